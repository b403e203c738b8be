from typing import Dict, List, Optional, Sequence

from .config.options import SortStrategy
from .lex_utils import find_lex_closest_index
from .logger import get_logger
from .xliff_obj import TranslationFile, TranslationUnit

logger = get_logger(__name__)


def sort_units(translation_file: TranslationFile, strategy: SortStrategy,
               added_ids: Optional[Sequence[str]] = None) -> TranslationFile:
    """
    Reorders a merged catalog.

    idAsc: by id (ordinal string order).
    stableAppendNew: as merged, i.e. existing order with new units at the end.
    stableAlphabetNew: existing order, every new unit is placed next to the
        lexicographically closest id (one at a time, in merge order).
    """
    strategy = SortStrategy(strategy)
    if strategy is SortStrategy.ID_ASC:
        return translation_file.map_units(lambda units: sorted(units, key=lambda u: u.id))
    if strategy is SortStrategy.STABLE_APPEND_NEW:
        return translation_file.map_units(list)

    added = set(added_ids or ())
    by_id = {u.id: u for u in translation_file.units}
    units = [u for u in translation_file.units if u.id not in added]
    new_units = [by_id[unit_id] for unit_id in added_ids or () if unit_id in by_id]
    return translation_file.map_units(lambda _: insert_by_lex_distance(units, new_units))


def insert_by_lex_distance(units: List[TranslationUnit], new_units: Sequence[TranslationUnit]) -> List[TranslationUnit]:
    ordered = list(units)
    for unit in new_units:
        index, before = find_lex_closest_index(unit.id, ordered, key=lambda u: u.id)
        ordered.insert(index if before else index + 1, unit)
    return ordered


def restore_previous_order(translation_file: TranslationFile, previous_ids: Sequence[str],
                           id_mapping: Optional[Dict[str, str]] = None,
                           alphabet_new: bool = False) -> TranslationFile:
    """
    Orders a freshly extracted catalog like its previous version. Old ids are
    translated through `id_mapping` (fuzzy matched id changes). Units without
    a previous position go to the end ordered by id (case insensitive), or
    with `alphabet_new` next to their lexicographically closest id.
    """
    id_mapping = id_mapping or {}
    positions: Dict[str, int] = {}
    for index, old_id in enumerate(previous_ids):
        positions.setdefault(id_mapping.get(old_id, old_id), index)

    known = sorted((u for u in translation_file.units if u.id in positions), key=lambda u: positions[u.id])
    unknown = [u for u in translation_file.units if u.id not in positions]
    logger.debug(f"Restoring order of {len(known)} units, {len(unknown)} without previous position")

    if alphabet_new:
        return translation_file.map_units(lambda _: insert_by_lex_distance(known, unknown))
    return translation_file.map_units(lambda _: known + sorted(unknown, key=lambda u: u.id.lower()))
