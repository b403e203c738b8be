import dataclasses
import os
from typing import Dict, List, Optional, Tuple, Union

from ..config.options import MergeOptions, SortStrategy
from ..errors import XliffMergeError
from ..file_utils import read_file_if_exists, write_file_atomic
from ..logger import get_logger
from ..merger import IdMapping, Merger
from ..parser import XliffParser
from ..sorting import restore_previous_order, sort_units
from ..writer import XliffWriter, normalize_translation_file
from ..xliff_obj import TranslationFile, XliffVersion

logger = get_logger(__name__)


def resolve_version(dialect: Union[XliffVersion, str]) -> XliffVersion:
    """Accepts a version ("1.2", "2.0") or a format option ("xlf", "xlf2", ...)."""
    if isinstance(dialect, XliffVersion):
        return dialect
    if dialect in (XliffVersion.V1.value, XliffVersion.V2.value):
        return XliffVersion(dialect)
    return XliffVersion.from_format(dialect)


def filter_ids(translation_file: TranslationFile, options: MergeOptions) -> TranslationFile:
    """Applies include_ids_with_prefix (if set) and then remove_ids_with_prefix."""
    include = tuple(options.include_ids_with_prefix)
    remove = tuple(options.remove_ids_with_prefix)

    def keep(unit_id: str) -> bool:
        if include and not unit_id.startswith(include):
            return False
        return not (remove and unit_id.startswith(remove))

    if not include and not remove:
        return translation_file
    filtered = translation_file.map_units(lambda units: [u for u in units if keep(u.id)])
    logger.debug(f"Id filters dropped {len(translation_file.units) - len(filtered.units)} units")
    return filtered


def strip_locations(translation_file: TranslationFile) -> TranslationFile:
    return translation_file.map_units(lambda units: [dataclasses.replace(u, locations=[]) for u in units])


def prepare_source_file(text: str, version: XliffVersion, options: MergeOptions) -> TranslationFile:
    """Parses the extracted catalog, drops filtered ids and normalizes whitespace."""
    parsed = XliffParser(version, options.sort_nested_tag_attributes).parse(text)
    return normalize_translation_file(filter_ids(parsed, options), options)


def merge_into(incoming: TranslationFile, existing_text: Optional[str], version: XliffVersion,
               options: MergeOptions, is_source_lang: bool = False) -> Tuple[TranslationFile, IdMapping]:
    """
    Merges the prepared incoming catalog into the existing catalog text and
    sorts the result. A missing or empty existing catalog starts out empty.
    """
    if existing_text and existing_text.strip():
        existing = XliffParser(version, options.sort_nested_tag_attributes).parse(existing_text)
    else:
        existing = TranslationFile([], incoming.source_lang, None, incoming.xml_header, incoming.trailing_whitespace)

    merger = Merger(options, incoming, options.initial_state_label or version.default_initial_state)
    merged, id_mapping = merger.merge_with_mapping(existing, is_source_lang)
    merged = sort_units(merged, options.sort, merger.added_ids)
    if not options.include_context_in(is_source_file=False):
        merged = strip_locations(merged)
    return merged, id_mapping


def merge_catalogs(incoming_text: str, existing_text: Optional[str], dialect: Union[XliffVersion, str],
                   options: Optional[MergeOptions] = None, is_source_lang: bool = False) -> str:
    """
    End-to-end merge of two catalog texts: parse, merge, sort, serialize.
    Returns the updated content of the existing (target) catalog.
    """
    options = options or MergeOptions()
    version = resolve_version(dialect)
    incoming = prepare_source_file(incoming_text, version, options)
    merged, _ = merge_into(incoming, existing_text, version, options, is_source_lang)
    return XliffWriter(version, options).write(merged)


class ExtractMergeService:
    """
    Post-processes a fresh extraction on disk: merges the extracted source
    catalog into every target catalog and rewrites the source catalog
    normalized (and, where possible, in its previous order).
    """

    def __init__(self, options: MergeOptions):
        self.options = options
        self.version = options.version
        self.writer = XliffWriter(self.version, options)

    @property
    def source_path(self) -> str:
        return os.path.join(self.options.output_path, self.options.source_file)

    def target_path(self, target_file: str) -> str:
        return os.path.join(self.options.output_path, target_file)

    def run(self, previous_source_text: Optional[str] = None) -> IdMapping:
        """
        `previous_source_text` is the source catalog as it was before the
        extraction ran; it is used to keep the source file order stable.
        Returns the combined old -> new id mapping of all target files.
        """
        logger.info(f"Normalizing {self.source_path} ...")
        source_text = read_file_if_exists(self.source_path)
        if source_text is None:
            raise XliffMergeError(f"Extracted source file not found: {self.source_path}")
        incoming = prepare_source_file(source_text, self.version, self.options)

        id_mapping: Dict[str, str] = {}
        for target_file in self.options.target_files:
            path = self.target_path(target_file)
            logger.info(f"Merging and normalizing {path} ...")
            is_source_lang = target_file == self.options.source_language_target_file
            merged, mapping = merge_into(incoming, read_file_if_exists(path), self.version, self.options,
                                         is_source_lang)
            write_file_atomic(path, self.writer.write(merged))
            id_mapping.update(mapping)

        source_file = self._order_source(incoming, previous_source_text, id_mapping)
        if not self.options.include_context_in(is_source_file=True):
            source_file = strip_locations(source_file)
        write_file_atomic(self.source_path, self.writer.write(source_file))
        logger.info(f"Finished merging {len(self.options.target_files)} target files "
                    f"({len(id_mapping)} fuzzy matched id changes)")
        return id_mapping

    def _order_source(self, incoming: TranslationFile, previous_source_text: Optional[str],
                      id_mapping: IdMapping) -> TranslationFile:
        sort = self.options.sort
        if sort is SortStrategy.ID_ASC:
            return sort_units(incoming, sort)
        if not previous_source_text or not previous_source_text.strip():
            return incoming
        previous = XliffParser(self.version).parse(previous_source_text)
        return restore_previous_order(incoming, [u.id for u in previous.units], id_mapping,
                                      alphabet_new=sort is SortStrategy.STABLE_ALPHABET_NEW)

    def written_files(self) -> List[str]:
        return [self.target_path(t) for t in self.options.target_files] + [self.source_path]
