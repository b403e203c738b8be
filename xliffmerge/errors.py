class XliffMergeError(Exception):
    """Base class for all errors raised by xliffmerge."""


class MalformedCatalogError(XliffMergeError):
    """
    Raised when a catalog cannot be parsed: invalid XML or a missing
    required element (file, body, unit segment, source).
    """


class UnitNotFoundError(XliffMergeError, KeyError):
    """Raised when replacing a unit id that is not part of the catalog."""

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Unit {unit_id} not found")

    def __str__(self):
        # KeyError would quote the message
        return self.args[0]


class ConfigError(XliffMergeError, ValueError):
    """Raised for invalid merge options."""
