"""
Serializes a TranslationFile to XLIFF 1.2 / 2.0 text.

The document scaffolding is fixed per dialect, so the output only depends
on the model (and the whitespace options): merging and re-extracting the
same messages gives byte-identical files.
"""
import dataclasses
from typing import Optional

from lxml import etree

from .config.options import MergeOptions
from .logger import get_logger
from .markup import EntityShield, content, inner_markup, is_element, parse_fragment
from .pretty import PrettyPrinter
from .whitespace import WS_CHARS, collapse_whitespace
from .xliff_obj import TranslationFile, TranslationUnit, XliffVersion

logger = get_logger(__name__)

NAMESPACE_XLF1 = "urn:oasis:names:tc:xliff:document:1.2"
NAMESPACE_XLF2 = "urn:oasis:names:tc:xliff:document:2.0"


def normalize_markup(markup: Optional[str], collapse: bool = True, trim: bool = False) -> Optional[str]:
    """
    Applies the whitespace policy to the raw markup of a source or target:
    `collapse` turns runs of space/tab/CR/LF in text into one space, `trim`
    strips them at both ends of the content. Attribute values of inline tags
    are never touched.
    """
    if markup is None or not (collapse or trim):
        return markup
    if "<" not in markup:
        if collapse:
            markup = collapse_whitespace(markup)
        return markup.strip(WS_CHARS) if trim else markup

    shield = EntityShield()
    element = parse_fragment("segment", markup, shield)
    if collapse:
        for node in element.iter():
            if node is not element:
                node.tail = collapse_whitespace(node.tail)
            if is_element(node):
                node.text = collapse_whitespace(node.text)
    if trim:
        _trim_content(element)
    return inner_markup(element, shield)


def _trim_content(element: etree._Element):
    items = content(element)
    if not items:
        return
    if isinstance(items[0], str):
        element.text = element.text.lstrip(WS_CHARS)
    if isinstance(items[-1], str):
        last = element[-1] if len(element) else None
        if last is None:
            element.text = element.text.rstrip(WS_CHARS)
        else:
            last.tail = last.tail.rstrip(WS_CHARS)


def normalize_unit(unit: TranslationUnit, options: MergeOptions) -> TranslationUnit:
    return dataclasses.replace(
        unit,
        source=normalize_markup(unit.source, options.collapse_whitespace, options.trim),
        target=normalize_markup(unit.target, options.collapse_whitespace, options.trim),
    )


def normalize_translation_file(translation_file: TranslationFile, options: MergeOptions) -> TranslationFile:
    """Applies the source/target whitespace policy of `options` to every unit."""
    return translation_file.map_units(lambda units: [normalize_unit(u, options) for u in units])


class XliffWriter:
    def __init__(self, version: XliffVersion, options: Optional[MergeOptions] = None):
        self.version = version
        self.options = options or MergeOptions()
        self.printer = PrettyPrinter(self.options.pretty_nested_tags, self.options.self_closing_empty_targets)
        self._shield = EntityShield()

    def write(self, translation_file: TranslationFile) -> str:
        """Returns the full file content: xml header, pretty printed tree, trailing whitespace."""
        self._shield = EntityShield()
        translation_file = normalize_translation_file(translation_file, self.options)
        if self.version is XliffVersion.V2:
            root = self._build_xlf2(translation_file)
            namespace = NAMESPACE_XLF2
        else:
            root = self._build_xlf1(translation_file)
            namespace = NAMESPACE_XLF1

        text = _declare_namespace(self.printer.render(root), self.version, namespace)
        text = self._shield.restore(text)
        return (translation_file.xml_header or "") + text + (translation_file.trailing_whitespace or "")

    def _build_xlf1(self, translation_file: TranslationFile) -> etree._Element:
        root = etree.Element("xliff")
        root.set("version", XliffVersion.V1.value)
        file_node = etree.SubElement(root, "file")
        self._set(file_node, "source-language", translation_file.source_lang)
        if translation_file.target_lang is not None:
            self._set(file_node, "target-language", translation_file.target_lang)
        file_node.set("datatype", "plaintext")
        file_node.set("original", "ng2.template")
        body = etree.SubElement(file_node, "body")

        for unit in translation_file.units:
            trans_unit = etree.SubElement(body, "trans-unit")
            self._set(trans_unit, "id", unit.id)
            trans_unit.set("datatype", "html")
            trans_unit.append(self._fragment("source", unit.source))
            if unit.target is not None:
                target = self._fragment("target", unit.target)
                if unit.state is not None:
                    self._set(target, "state", unit.state)
                trans_unit.append(target)
            for note_from, text in (("description", unit.description), ("meaning", unit.meaning)):
                if text is not None:
                    note = self._fragment("note", text)
                    note.set("priority", "1")
                    note.set("from", note_from)
                    trans_unit.append(note)
            for location in unit.locations:
                group = etree.SubElement(trans_unit, "context-group")
                group.set("purpose", "location")
                source_file = etree.SubElement(group, "context")
                source_file.set("context-type", "sourcefile")
                source_file.text = self._shield.protect_value(location.file)
                if location.line_start is not None:
                    line_number = etree.SubElement(group, "context")
                    line_number.set("context-type", "linenumber")
                    line_number.text = str(location.line_start)
            self._apply_additional_attributes(trans_unit, unit)
        return root

    def _build_xlf2(self, translation_file: TranslationFile) -> etree._Element:
        root = etree.Element("xliff")
        root.set("version", XliffVersion.V2.value)
        self._set(root, "srcLang", translation_file.source_lang)
        if translation_file.target_lang:
            self._set(root, "trgLang", translation_file.target_lang)
        file_node = etree.SubElement(root, "file")
        file_node.set("id", "ngi18n")
        file_node.set("original", "ng.template")

        for unit in translation_file.units:
            unit_node = etree.SubElement(file_node, "unit")
            self._set(unit_node, "id", unit.id)
            if unit.meaning is not None or unit.description is not None or unit.locations:
                notes = etree.SubElement(unit_node, "notes")
                for location in unit.locations:
                    note = etree.SubElement(notes, "note")
                    note.set("category", "location")
                    note.text = self._shield.protect_value(_location_text(location))
                for category, text in (("description", unit.description), ("meaning", unit.meaning)):
                    if text is not None:
                        note = self._fragment("note", text)
                        note.set("category", category)
                        notes.append(note)
            segment = etree.SubElement(unit_node, "segment")
            if unit.state:
                self._set(segment, "state", unit.state)
            segment.append(self._fragment("source", unit.source))
            if unit.target is not None:
                segment.append(self._fragment("target", unit.target))
            self._apply_additional_attributes(unit_node, unit)
        return root

    def _set(self, node: etree._Element, name: str, value: str):
        node.set(name, self._shield.protect_value(value))

    def _fragment(self, tag: str, markup: str) -> etree._Element:
        return parse_fragment(tag, markup, self._shield)

    def _apply_additional_attributes(self, unit_node: etree._Element, unit: TranslationUnit):
        for attribute in unit.additional_attributes or []:
            node = unit_node
            if attribute.path != ".":
                for tag in attribute.path.split("."):
                    node = node.find(tag) if node is not None else None
            if node is None:
                logger.warning(f"Unit {unit.id}: no element at '{attribute.path}' for attribute '{attribute.name}'")
                continue
            self._set(node, attribute.name, attribute.value)


def _declare_namespace(rendered: str, version: XliffVersion, namespace: str) -> str:
    """
    The tree is built without namespaces (like parsed trees); the default
    namespace declaration goes right after the version attribute, where the
    extraction tools put it.
    """
    start = f'<xliff version="{version.value}"'
    return start + f' xmlns="{namespace}"' + rendered[len(start):]


def _location_text(location) -> str:
    text = location.file
    if location.line_start is not None:
        text += f":{location.line_start}"
        if location.line_end is not None:
            text += f",{location.line_end}"
    return text


def to_xlf1(translation_file: TranslationFile, options: Optional[MergeOptions] = None) -> str:
    return XliffWriter(XliffVersion.V1, options).write(translation_file)


def to_xlf2(translation_file: TranslationFile, options: Optional[MergeOptions] = None) -> str:
    return XliffWriter(XliffVersion.V2, options).write(translation_file)
