"""
Whitespace-preserving pretty printer for XLIFF trees.

Structural elements are indented by two spaces per level by setting the
text/tail of the lxml tree, which is then serialized with `etree.tostring`.
The content of <source>/<target> (and of notes) is user visible text and is
written as it is; only with `pretty_nested_tags` a segment consisting of
nothing but inline tags (and whitespace between them) is indented like
structural content.
"""
from lxml import etree

from .markup import is_element
from .whitespace import is_whitespace

SEGMENT_TAGS = ("source", "target")
MARKUP_TAGS = SEGMENT_TAGS + ("note",)
INDENT = "  "


def _newline(level: int) -> str:
    return "\n" + INDENT * level


def _blank(text) -> bool:
    return text is None or is_whitespace(text)


def _only_blank_text(element: etree._Element) -> bool:
    return _blank(element.text) and all(_blank(child.tail) for child in element)


class PrettyPrinter:
    def __init__(self, pretty_nested_tags: bool = False, self_closing_empty_targets: bool = True):
        self.pretty_nested_tags = pretty_nested_tags
        self.self_closing_empty_targets = self_closing_empty_targets

    def render(self, root: etree._Element) -> str:
        """Indents `root` in place and serializes it (without xml declaration)."""
        self.indent(root)
        if not self.self_closing_empty_targets:
            # only <target>, inline tags like <hr/> stay self-closing
            for target in root.iter("target"):
                if target.text is None and len(target) == 0:
                    target.text = ""
        return etree.tostring(root, encoding="unicode")

    def indent(self, element: etree._Element, level: int = 0):
        if element.tag in MARKUP_TAGS:
            if element.tag in SEGMENT_TAGS and self.pretty_nested_tags:
                self._indent_nested(element, level)
            return
        # mixed content (text next to elements) is kept as it is
        if len(element) == 0 or not _only_blank_text(element):
            return
        self._indent_children(element, level)
        for child in element:
            if is_element(child):
                self.indent(child, level + 1)

    def _indent_nested(self, element: etree._Element, level: int):
        if len(element) == 0 or not _only_blank_text(element) or not all(is_element(c) for c in element):
            return
        self._indent_children(element, level)
        for child in element:
            self._indent_nested(child, level + 1)

    @staticmethod
    def _indent_children(element: etree._Element, level: int):
        element.text = _newline(level + 1)
        for child in element:
            child.tail = _newline(level + 1)
        element[-1].tail = _newline(level)
