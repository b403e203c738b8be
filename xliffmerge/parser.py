import re
from typing import Dict, List, Optional, Tuple

from lxml import etree

from .errors import MalformedCatalogError
from .logger import get_logger
from .markup import (EntityShield, inner_markup, is_element, parse_document, sort_attributes,
                     split_document, text_value)
from .xliff_obj import AdditionalAttribute, FileLocation, TranslationFile, TranslationUnit, XliffVersion

logger = get_logger(__name__)

_LOCATION_LINES = re.compile(r"^(.*):(\d+)(?:,(\d+))?\Z", re.DOTALL)

# Attributes the codec maps itself, per element name; any other attribute on
# these elements is kept as an AdditionalAttribute. Inline tags are not listed.
KNOWN_ATTRIBUTES_XLF1: Dict[str, Tuple[str, ...]] = {
    "trans-unit": ("id", "datatype"),
    "source": (),
    "target": ("state",),
    "note": ("priority", "from"),
    "context": ("context-type",),
    "context-group": ("purpose",),
}

KNOWN_ATTRIBUTES_XLF2: Dict[str, Tuple[str, ...]] = {
    "unit": ("id",),
    "notes": (),
    "note": ("category",),
    "segment": ("state",),
    "source": (),
    "target": (),
}


class XliffParser:
    """
    Reads XLIFF 1.2 / 2.0 text into a TranslationFile.

    Source, target, meaning and description keep their raw inner markup
    (inline tags, whitespace and entity references as written). Ids,
    languages, states and locations are plain values.
    """

    def __init__(self, version: XliffVersion, sort_nested_tag_attributes: bool = False):
        self.version = version
        self.sort_nested_tag_attributes = sort_nested_tag_attributes
        self._shield = EntityShield()

    def parse(self, text: str) -> TranslationFile:
        self._shield = EntityShield()
        header, body, trailing = split_document(text)
        root = parse_document(body, self._shield)

        if self.version is XliffVersion.V2:
            translation_file = self._parse_xlf2(root)
        else:
            translation_file = self._parse_xlf1(root)
        translation_file.xml_header = header
        translation_file.trailing_whitespace = trailing
        logger.debug(f"Parsed {len(translation_file.units)} units (XLIFF {self.version.value}, "
                     f"{translation_file.source_lang} -> {translation_file.target_lang})")
        return translation_file

    # ------------------------------------------------------------------
    # XLIFF 1.2
    # ------------------------------------------------------------------

    def _parse_xlf1(self, root: etree._Element) -> TranslationFile:
        file_node = self._required(root, "file")
        body = self._required(file_node, "body")
        source_lang = self._attribute(file_node, "source-language")
        if source_lang is None:
            raise MalformedCatalogError("<file> has no source-language")

        units = [self._unit_xlf1(node) for node in body if is_element(node)]
        return TranslationFile(units, source_lang, self._attribute(file_node, "target-language"))

    def _unit_xlf1(self, node: etree._Element) -> TranslationUnit:
        unit_id = self._unit_id(node)
        source = self._required(node, "source", unit_id)
        target = node.find("target")
        notes = node.findall("note")

        unit = TranslationUnit(
            id=unit_id,
            source=self._markup(source),
            target=self._markup(target),
            state=self._attribute(target, "state"),
            meaning=self._markup(self._note(notes, "from", "meaning")),
            description=self._markup(self._note(notes, "from", "description")),
            locations=[self._context_location(group, unit_id) for group in node.findall("context-group")],
        )
        unit.additional_attributes = self._additional_attributes(node, KNOWN_ATTRIBUTES_XLF1)
        return unit

    def _context_location(self, group: etree._Element, unit_id: str) -> FileLocation:
        contexts = group.findall("context")
        source_file = self._note(contexts, "context-type", "sourcefile")
        if source_file is None:
            raise MalformedCatalogError(f"Unit {unit_id}: <context-group> without sourcefile context")
        line_number = self._note(contexts, "context-type", "linenumber")
        return FileLocation(
            file=text_value(source_file, self._shield),
            line_start=self._line(text_value(line_number, self._shield), unit_id),
        )

    # ------------------------------------------------------------------
    # XLIFF 2.0
    # ------------------------------------------------------------------

    def _parse_xlf2(self, root: etree._Element) -> TranslationFile:
        file_node = self._required(root, "file")
        source_lang = self._attribute(root, "srcLang")
        if source_lang is None:
            raise MalformedCatalogError("<xliff> has no srcLang")

        units = [self._unit_xlf2(node) for node in file_node if is_element(node)]
        return TranslationFile(units, source_lang, self._attribute(root, "trgLang"))

    def _unit_xlf2(self, node: etree._Element) -> TranslationUnit:
        unit_id = self._unit_id(node)
        segment = self._required(node, "segment", unit_id)
        source = self._required(segment, "source", unit_id)
        notes_node = node.find("notes")
        notes = notes_node.findall("note") if notes_node is not None else []

        unit = TranslationUnit(
            id=unit_id,
            source=self._markup(source),
            target=self._markup(segment.find("target")),
            state=self._attribute(segment, "state"),
            meaning=self._markup(self._note(notes, "category", "meaning")),
            description=self._markup(self._note(notes, "category", "description")),
            locations=[self._note_location(note, unit_id) for note in notes
                       if self._attribute(note, "category") == "location"],
        )
        unit.additional_attributes = self._additional_attributes(node, KNOWN_ATTRIBUTES_XLF2)
        return unit

    def _note_location(self, note: etree._Element, unit_id: str) -> FileLocation:
        """Location notes look like "src/app/app.component.html:12" or "...:12,14"."""
        text = text_value(note, self._shield)
        match = _LOCATION_LINES.match(text)
        if match is None:
            # no line numbers; a colon may still be part of the path, e.g. a drive letter
            return FileLocation(file=text)
        return FileLocation(
            file=match.group(1),
            line_start=self._line(match.group(2), unit_id),
            line_end=self._line(match.group(3), unit_id),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _required(self, parent: etree._Element, tag: str, unit_id: Optional[str] = None) -> etree._Element:
        node = parent.find(tag)
        if node is None:
            where = f"unit {unit_id}" if unit_id is not None else f"<{parent.tag}>"
            raise MalformedCatalogError(f"Missing <{tag}> in {where}")
        return node

    def _unit_id(self, node: etree._Element) -> str:
        unit_id = self._attribute(node, "id")
        if not unit_id:
            raise MalformedCatalogError(f"<{node.tag}> without id (line {node.sourceline})")
        return unit_id

    def _attribute(self, node: Optional[etree._Element], name: str) -> Optional[str]:
        if node is None:
            return None
        return self._shield.value(node.get(name))

    def _note(self, nodes: List[etree._Element], attribute: str, value: str) -> Optional[etree._Element]:
        return next((n for n in nodes if self._attribute(n, attribute) == value), None)

    def _markup(self, node: Optional[etree._Element]) -> Optional[str]:
        if node is None:
            return None
        if self.sort_nested_tag_attributes:
            sort_attributes(node)
        return inner_markup(node, self._shield)

    def _line(self, value: Optional[str], unit_id: str) -> Optional[int]:
        if value is None or not value.strip():
            return None
        try:
            return int(value)
        except ValueError as e:
            raise MalformedCatalogError(f"Unit {unit_id}: invalid line number {value!r}") from e

    def _additional_attributes(self, unit_node: etree._Element,
                               known: Dict[str, Tuple[str, ...]]) -> Optional[List[AdditionalAttribute]]:
        attributes = []
        for node, path in _elements_with_path(unit_node):
            if node.tag not in known:
                continue
            for name, value in node.attrib.items():
                if name not in known[node.tag]:
                    attributes.append(AdditionalAttribute(name, self._shield.value(value), path))
        return attributes or None


def _elements_with_path(unit_node: etree._Element, path: str = "."):
    """Yields (element, dotted path) for the unit and every element below it, in document order."""
    if path == ".":
        yield unit_node, path
    for child in unit_node:
        if not is_element(child):
            continue
        child_path = child.tag if path == "." else f"{path}.{child.tag}"
        yield child, child_path
        yield from _elements_with_path(child, child_path)


def from_xlf1(text: str, sort_nested_tag_attributes: bool = False) -> TranslationFile:
    return XliffParser(XliffVersion.V1, sort_nested_tag_attributes).parse(text)


def from_xlf2(text: str, sort_nested_tag_attributes: bool = False) -> TranslationFile:
    return XliffParser(XliffVersion.V2, sort_nested_tag_attributes).parse(text)
