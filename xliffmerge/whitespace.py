import re
from typing import Optional

# Space, tab and line breaks; other spaces like NBSP (U+00A0) are kept as they are
WS_CHARS = "\n\r\t "
_WS_RUN = re.compile(r"[\n\r\t ]+")
_SPACE_BEFORE_TAG = re.compile(r"^[\n\r\t ]*<")
_SPACE_AFTER_TAG = re.compile(r">[\n\r\t ]*$")
_SPACE_BETWEEN_TAGS = re.compile(r">[\n\r\t ]*<")


def collapse_whitespace(text: Optional[str]) -> Optional[str]:
    """Collapses runs of space, tab, CR and LF to a single space."""
    if text is None:
        return None
    return _WS_RUN.sub(" ", text)


def trim_whitespace(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return text.strip(WS_CHARS)


def is_whitespace(text: Optional[str]) -> bool:
    return text is not None and not text.strip()


def pad_tags(text: str) -> str:
    """
    Normalizes whitespace around tags to exactly one space, so that
    "<a/><b/>" and its pretty printed form compare equal.
    """
    text = _SPACE_BETWEEN_TAGS.sub("> <", text)
    text = _SPACE_BEFORE_TAG.sub(" <", text)
    return _SPACE_AFTER_TAG.sub("> ", text)


def has_leading_space(text: str) -> bool:
    return bool(text) and text[0] in WS_CHARS


def has_trailing_space(text: str) -> bool:
    return bool(text) and text[-1] in WS_CHARS


def repad(text: str, like: str) -> str:
    """Strips `text` and re-adds single spaces where `like` has leading/trailing whitespace."""
    lead = " " if has_leading_space(like) else ""
    trail = " " if has_trailing_space(like) else ""
    return lead + text.strip(WS_CHARS) + trail
