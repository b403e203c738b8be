import json
import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..errors import ConfigError
from ..logger import get_logger
from ..xliff_obj import XliffVersion

logger = get_logger(__name__)


class SortStrategy(str, Enum):
    ID_ASC = "idAsc"
    STABLE_APPEND_NEW = "stableAppendNew"
    STABLE_ALPHABET_NEW = "stableAlphabetNew"


SOURCE_FILE_ONLY = "sourceFileOnly"
OMIT = "omit"

# Builder configurations use null for "not set" on these
_NULL_MEANS_DEFAULT = ("format", "output_path", "source_file", "target_files",
                       "remove_ids_with_prefix", "include_ids_with_prefix", "sort")


@dataclass
class MergeOptions:
    """
    Everything that controls extraction post-processing and merging.
    Keys in JSON files may be camelCase (as in an angular.json builder block)
    or snake_case.
    """
    format: str = "xlf"  # xlf, xlif, xliff (1.2) / xlf2, xliff2 (2.0)
    output_path: str = "."
    source_file: str = "messages.xlf"
    target_files: List[str] = field(default_factory=list)
    source_language_target_file: Optional[str] = None
    remove_ids_with_prefix: List[str] = field(default_factory=list)
    include_ids_with_prefix: List[str] = field(default_factory=list)
    fuzzy_match: bool = True
    reset_translation_state: bool = True  # source changes reset the state to the initial label
    pretty_nested_tags: bool = False
    sort_nested_tag_attributes: bool = False
    self_closing_empty_targets: bool = True
    collapse_whitespace: bool = True
    trim: bool = False
    include_context: Union[bool, str] = True  # True, False or "sourceFileOnly"
    new_translation_targets_blank: Union[bool, str] = False  # True, False or "omit"
    initial_state_label: Optional[str] = None  # None: "new" (1.2) / "initial" (2.0)
    sort: SortStrategy = SortStrategy.STABLE_APPEND_NEW
    verbose: bool = False

    def __post_init__(self):
        self.validate()

    @property
    def version(self) -> XliffVersion:
        return XliffVersion.from_format(self.format)

    def initial_state(self) -> str:
        return self.initial_state_label or self.version.default_initial_state

    def include_context_in(self, is_source_file: bool) -> bool:
        """Whether locations are written to the source file / to target files."""
        if self.include_context == SOURCE_FILE_ONLY:
            return is_source_file
        return bool(self.include_context)

    def validate(self):
        XliffVersion.from_format(self.format)
        try:
            self.sort = SortStrategy(self.sort)
        except ValueError as e:
            raise ConfigError(f"Unsupported sort: {self.sort!r} "
                              f"(expected one of {', '.join(s.value for s in SortStrategy)})") from e
        if self.include_context not in (True, False, SOURCE_FILE_ONLY):
            raise ConfigError(f"Unsupported includeContext: {self.include_context!r}")
        if self.new_translation_targets_blank not in (True, False, OMIT):
            raise ConfigError(f"Unsupported newTranslationTargetsBlank: {self.new_translation_targets_blank!r}")
        for name in ("target_files", "remove_ids_with_prefix", "include_ids_with_prefix"):
            value = getattr(self, name)
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"{name} must be a list of strings, got {value!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MergeOptions":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name not in known:
                logger.warning(f"Ignoring unknown option: {key}")
                continue
            if value is None and name in _NULL_MEANS_DEFAULT:
                continue
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["sort"] = self.sort.value
        return data


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def load_options(path: str) -> MergeOptions:
    """
    Loads options from a JSON file. The options may sit at the top level or
    below an "options" key (like a builder configuration).
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid options file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid options file {path}: expected a JSON object")
    if isinstance(data.get("options"), dict):
        data = data["options"]
    logger.debug(f"Loaded options from {path}: {sorted(data)}")
    return MergeOptions.from_dict(data)
