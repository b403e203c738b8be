"""
Thin tree layer over lxml used by the XLIFF codec.

lxml resolves entity references and (optionally) drops CDATA markers, which
would re-escape the raw markup of source/target segments on output. Before a
document or fragment reaches lxml, `EntityShield` swaps every entity reference
and CDATA section for private-use placeholder characters; text serialized by
`etree.tostring` is passed back through the same shield to get the original
spelling back. Private-use characters that are already part of the text are
stashed the same way, so they come back unchanged.

Element and attribute names are stripped of their namespace on parse
(`xml:` attributes excepted), and the then unused declarations are removed.
"""
import functools
import re
from typing import List, Optional, Tuple, Union

from lxml import etree

from .errors import MalformedCatalogError

XML_NS = "http://www.w3.org/XML/1998/namespace"

_XML_DECLARATION = re.compile(r"^\ufeff?(?:<\?xml [^>]*>\s*)?", re.IGNORECASE)
_TRAILING_WHITESPACE = re.compile(r"\s+\Z")

_ENTITY_PATTERN = re.compile(r"&(#x[0-9a-fA-F]+|#[0-9]+|[A-Za-z_][\w.-]*);")

_ENTITY_OPEN, _ENTITY_CLOSE = "\ue000", "\ue001"
_STASH_OPEN, _STASH_CLOSE = "\ue002", "\ue003"
_PLACEHOLDER_CHARS = re.compile("[\ue000-\ue003]")
_CDATA_OR_PLACEHOLDER_CHAR = re.compile(r"<!\[CDATA\[.*?\]\]>|[\ue000-\ue003]", re.DOTALL)
_SHIELDED_ENTITY = re.compile(_ENTITY_OPEN + r"([^" + _ENTITY_CLOSE + r"]*)" + _ENTITY_CLOSE)
_STASHED = re.compile(_STASH_OPEN + r"(\d+)" + _STASH_CLOSE)
_SHIELDED_ANY = re.compile(_SHIELDED_ENTITY.pattern + "|" + _STASHED.pattern)

_CDATA_START, _CDATA_END = "<![CDATA[", "]]>"

Node = Union[str, etree._Element]


@functools.lru_cache(maxsize=None)
def resolve_reference(reference: str) -> str:
    """Resolves an entity or character reference name ("amp", "#169") with lxml."""
    try:
        return etree.fromstring(f"<v>&{reference};</v>").text or ""
    except etree.XMLSyntaxError as e:
        raise MalformedCatalogError(f"Undefined entity &{reference};") from e


class EntityShield:
    """Keeps entity references, CDATA sections and placeholder characters verbatim across lxml."""

    def __init__(self):
        self._stash: List[str] = []

    def _stash_match(self, match) -> str:
        self._stash.append(match.group(0))
        return f"{_STASH_OPEN}{len(self._stash) - 1}{_STASH_CLOSE}"

    def protect(self, markup: str) -> str:
        """Shields raw markup before it is handed to lxml."""
        markup = _CDATA_OR_PLACEHOLDER_CHAR.sub(self._stash_match, markup)
        return _ENTITY_PATTERN.sub(lambda m: f"{_ENTITY_OPEN}{m.group(1)}{_ENTITY_CLOSE}", markup)

    def protect_value(self, value: str) -> str:
        """Shields a plain value (attribute or text) that is set on a tree to be restored later."""
        return _PLACEHOLDER_CHARS.sub(self._stash_match, value)

    def restore(self, text: str) -> str:
        """Puts the original entity references, CDATA sections and characters back (markup)."""
        text = _SHIELDED_ENTITY.sub(lambda m: f"&{m.group(1)};", text)
        return _STASHED.sub(lambda m: self._stash[int(m.group(1))], text)

    def value(self, text: Optional[str]) -> Optional[str]:
        """Restores and then resolves references: the plain value of an attribute or text."""
        if text is None:
            return None
        # one pass, a resolved reference like &#xE002; is not read as a placeholder again
        return _SHIELDED_ANY.sub(self._resolve_match, text)

    def _resolve_match(self, match) -> str:
        if match.group(2) is None:
            return resolve_reference(match.group(1))
        return _plain(self._stash[int(match.group(2))])


def _plain(stashed: str) -> str:
    if stashed.startswith(_CDATA_START):
        return stashed[len(_CDATA_START):-len(_CDATA_END)]
    return stashed


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(remove_blank_text=False, resolve_entities=False, strip_cdata=False)


def split_document(text: str) -> Tuple[Optional[str], str, Optional[str]]:
    """Splits raw file content into (xml header, root element text, trailing whitespace)."""
    header = _XML_DECLARATION.match(text).group(0)
    body = text[len(header):]
    trailing = _TRAILING_WHITESPACE.search(body)
    if trailing:
        body = body[:trailing.start()]
    return header or None, body, trailing.group(0) if trailing else None


def parse_document(body: str, shield: EntityShield) -> etree._Element:
    """Parses the root element text; element names lose their namespace."""
    try:
        root = etree.fromstring(shield.protect(body), _xml_parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        raise MalformedCatalogError(f"Invalid XML: {e}") from e
    strip_namespaces(root)
    return root


def parse_fragment(tag: str, markup: str, shield: EntityShield) -> etree._Element:
    """Wraps raw inner markup into an element `tag`, e.g. for <source>."""
    try:
        element = etree.fromstring(f"<{tag}>{shield.protect(markup)}</{tag}>", _xml_parser())
    except etree.XMLSyntaxError as e:
        raise MalformedCatalogError(f"Invalid markup in <{tag}>: {markup!r} ({e})") from e
    strip_namespaces(element)
    return element


def strip_namespaces(root: etree._Element):
    for node in root.iter():
        if not is_element(node):
            continue
        node.tag = etree.QName(node).localname
        if any(name.startswith("{") and not name.startswith(f"{{{XML_NS}}}") for name in node.attrib):
            attributes = [(_local_attribute_name(name), value) for name, value in node.attrib.items()]
            node.attrib.clear()
            for name, value in attributes:
                node.set(name, value)
    etree.cleanup_namespaces(root)


def _local_attribute_name(name: str) -> str:
    if name.startswith(f"{{{XML_NS}}}"):
        return name
    return etree.QName(name).localname if name.startswith("{") else name


def is_element(node) -> bool:
    """True for real elements, False for text, comments and processing instructions."""
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def content(element: etree._Element) -> List[Node]:
    """Children of `element` in document order, with text runs as plain strings."""
    items: List[Node] = []
    if element.text:
        items.append(element.text)
    for child in element:
        items.append(child)
        if child.tail:
            items.append(child.tail)
    return items


def inner_markup(element: etree._Element, shield: EntityShield) -> str:
    """Raw markup of everything inside `element`, with original entity spelling."""
    parts = []
    if element.text:
        holder = etree.Element("t")
        holder.text = element.text
        parts.append(etree.tostring(holder, encoding="unicode")[len("<t>"):-len("</t>")])
    for child in element:
        parts.append(etree.tostring(child, encoding="unicode", with_tail=True))
    return shield.restore("".join(parts))


def text_value(element: Optional[etree._Element], shield: EntityShield) -> Optional[str]:
    """Plain text of an element (nested markup is flattened), None for a missing element."""
    if element is None:
        return None
    return shield.value("".join(element.itertext()))


def sort_attributes(element: etree._Element):
    """Sorts the attributes of every element below `element` by name."""
    for node in element.iterdescendants():
        if is_element(node) and len(node.attrib) > 1:
            attributes = sorted(node.attrib.items())
            node.attrib.clear()
            for name, value in attributes:
                node.set(name, value)
