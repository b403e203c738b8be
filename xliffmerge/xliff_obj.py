from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .errors import ConfigError, UnitNotFoundError


class XliffVersion(str, Enum):
    V1 = "1.2"
    V2 = "2.0"

    @classmethod
    def from_format(cls, fmt: Optional[str]) -> "XliffVersion":
        """Maps a format option ("xlf", "xliff", "xlf2", ...) to a dialect."""
        fmt = fmt or "xlf"
        if fmt not in ("xlf", "xlif", "xliff", "xlf2", "xliff2"):
            raise ConfigError(f"Unsupported format: {fmt}")
        return cls.V2 if "2" in fmt else cls.V1

    @property
    def default_initial_state(self) -> str:
        return "initial" if self is XliffVersion.V2 else "new"


@dataclass
class FileLocation:
    file: str
    line_start: Optional[int] = None
    line_end: Optional[int] = None


@dataclass
class AdditionalAttribute:
    """
    An attribute the codec does not know about, kept for write-back.
    `path` is "." for the unit element itself, otherwise the dot-joined
    element names below the unit (e.g. "segment.target").
    """
    name: str
    value: str
    path: str = "."


@dataclass
class TranslationUnit:
    """
    Represents a single translation unit (trans-unit / unit) of an XLIFF file.
    """
    id: str
    source: str  # Raw inner markup of <source>
    target: Optional[str] = None  # Raw inner markup of <target>, None if absent
    state: Optional[str] = None
    meaning: Optional[str] = None
    description: Optional[str] = None
    locations: List[FileLocation] = field(default_factory=list)
    additional_attributes: Optional[List[AdditionalAttribute]] = None


@dataclass
class TranslationFile:
    """
    One catalog: ordered units plus the file level metadata needed to write
    it back unchanged.
    """
    units: List[TranslationUnit]
    source_lang: str
    target_lang: Optional[str] = None
    xml_header: Optional[str] = None
    trailing_whitespace: Optional[str] = None
    _positions: Optional[Dict[str, int]] = field(default=None, init=False, repr=False, compare=False)

    def map_units(self, mapper: Callable[[List[TranslationUnit]], List[TranslationUnit]]) -> "TranslationFile":
        """Returns a new file with the mapped unit list and the same metadata."""
        return TranslationFile(mapper(self.units), self.source_lang, self.target_lang,
                               self.xml_header, self.trailing_whitespace)

    def get_unit(self, unit_id: str) -> Optional[TranslationUnit]:
        index = self._index().get(unit_id)
        return self.units[index] if index is not None else None

    def replace_unit(self, unit: TranslationUnit, updated: TranslationUnit):
        """Replaces the unit with `unit.id` at its current position."""
        positions = self._index()
        index = positions.get(unit.id)
        if index is None:
            raise UnitNotFoundError(unit.id)
        self.units[index] = updated
        if updated.id != unit.id:
            del positions[unit.id]
            positions[updated.id] = index

    def add_unit(self, unit: TranslationUnit):
        self._index()[unit.id] = len(self.units)
        self.units.append(unit)

    def _index(self) -> Dict[str, int]:
        if self._positions is None:
            self._positions = {u.id: i for i, u in enumerate(self.units)}
        return self._positions
