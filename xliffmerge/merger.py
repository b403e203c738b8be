"""
Merges a freshly extracted catalog into an existing (translated) catalog.

Units are matched by id first. Incoming units without an id match may take
over an obsolete unit of the existing catalog whose source is close enough
(fuzzy matching), so translations survive id changes caused by small source
edits. Obsolete units that are not taken over are removed at the end.
"""
import dataclasses
import heapq
from typing import Dict, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from .config.options import OMIT, MergeOptions
from .logger import get_logger
from .whitespace import collapse_whitespace, pad_tags, repad, trim_whitespace
from .xliff_obj import TranslationFile, TranslationUnit

logger = get_logger(__name__)

FUZZY_THRESHOLD = 0.2

IdMapping = Dict[str, str]


class Merger:
    def __init__(self, options: MergeOptions, normalized_source_file: TranslationFile,
                 initial_state: Optional[str] = None):
        self.options = options
        self.source_file = normalized_source_file
        self.initial_state = initial_state or options.initial_state()
        self.id_mapping: IdMapping = {}
        # Ids of units created without any counterpart in the last merged file
        self.added_ids: List[str] = []

    def merge_with_mapping(self, dest_file: TranslationFile, is_source_lang: bool) -> Tuple[TranslationFile, IdMapping]:
        """
        Returns the merged catalog and the mapping of old to new ids of
        fuzzy matched units. `dest_file` itself is not modified.
        """
        self.id_mapping = {}
        self.added_ids = []

        incoming = self.source_file.units
        incoming_ids = {unit.id for unit in incoming}
        dest_by_id = {unit.id: unit for unit in dest_file.units}
        with_dest = [unit for unit in incoming if unit.id in dest_by_id]
        without_dest = [unit for unit in incoming if unit.id not in dest_by_id]

        # Obsolete units are only removed at the end, they can still be fuzzy matched until then
        remove_candidates = {unit.id: unit for unit in dest_file.units if unit.id not in incoming_ids}

        result = TranslationFile(list(dest_file.units), dest_file.source_lang, dest_file.target_lang,
                                 dest_file.xml_header, dest_file.trailing_whitespace)

        for unit in with_dest:
            result.replace_unit(unit, self.handle(unit, dest_by_id[unit.id], is_source_lang, remove_candidates))

        if self.options.fuzzy_match:
            self._merge_fuzzy(without_dest, result, is_source_lang, remove_candidates)
        else:
            for unit in without_dest:
                self._add(result, self.handle(unit, None, is_source_lang, remove_candidates))

        if remove_candidates:
            logger.debug(f"Removing {len(remove_candidates)} ids: {', '.join(remove_candidates)}")
        merged = result.map_units(lambda units: [u for u in units if u.id not in remove_candidates])
        return merged, self.id_mapping

    def _merge_fuzzy(self, pending: List[TranslationUnit], result: TranslationFile, is_source_lang: bool,
                     remove_candidates: Dict[str, TranslationUnit]):
        """
        Greedy assignment: the pending unit with the globally best candidate
        score is resolved first (ties go to the earlier unit). A matched
        candidate is taken out of every other unit's candidate list. Units
        left without candidates are added as new, in incoming order.
        """
        candidates = [find_close_matches(unit, list(remove_candidates.values())) for unit in pending]
        # dest id -> positions of pending units listing it as a candidate
        listed_by: Dict[str, List[int]] = {}
        for position, matches in enumerate(candidates):
            for _, dest_unit in matches:
                listed_by.setdefault(dest_unit.id, []).append(position)

        heap = [(matches[0][0], position) for position, matches in enumerate(candidates) if matches]
        heapq.heapify(heap)
        resolved = [False] * len(pending)

        while heap:
            score, position = heapq.heappop(heap)
            matches = candidates[position]
            if resolved[position] or not matches or matches[0][0] != score:
                continue  # stale entry
            resolved[position] = True
            best = matches[0][1]
            result.replace_unit(best, self.handle(pending[position], best, is_source_lang, remove_candidates))

            for other in listed_by.get(best.id, []):
                if resolved[other]:
                    continue
                other_matches = candidates[other]
                was_head = other_matches[0][1] is best
                other_matches[:] = [m for m in other_matches if m[1] is not best]
                if was_head and other_matches:
                    heapq.heappush(heap, (other_matches[0][0], other))

        for position, unit in enumerate(pending):
            if not resolved[position]:
                self._add(result, self.handle(unit, None, is_source_lang, remove_candidates))

    def _add(self, result: TranslationFile, unit: TranslationUnit):
        result.add_unit(unit)
        self.added_ids.append(unit.id)

    def handle(self, unit: TranslationUnit, dest_unit: Optional[TranslationUnit], is_source_lang: bool,
               remove_candidates: Dict[str, TranslationUnit]) -> TranslationUnit:
        """Syncs `unit` into `dest_unit`, or creates `unit` as new if there is no `dest_unit`."""
        if dest_unit is None:
            logger.debug(f'Adding unit with id "{unit.id}"')
            return dataclasses.replace(
                unit,
                target=self._new_target(unit, is_source_lang),
                state="final" if is_source_lang else self.initial_state,
            )

        updated = dest_unit
        if self._comparable(dest_unit.source) != self._comparable(unit.source):
            logger.debug(f'Updating unit with id "{unit.id}" with new source: {unit.source} (was: {dest_unit.source})')
            whitespace_only = _stripped(dest_unit.source) == _stripped(unit.source)
            sync_target = ((is_source_lang and dest_unit.target == dest_unit.source)
                           or self.is_untranslated(dest_unit))

            if sync_target and not (dest_unit.target is None and self.options.new_translation_targets_blank == OMIT):
                target = unit.source
            elif whitespace_only and dest_unit.target is not None:
                target = repad(dest_unit.target, like=unit.source)
            else:
                target = dest_unit.target

            if is_source_lang:
                state = "final"
            elif whitespace_only or not self.options.reset_translation_state:
                state = dest_unit.state
            else:
                state = self.initial_state
            updated = dataclasses.replace(updated, source=unit.source, target=target, state=state)

        if dest_unit.id != unit.id:
            logger.debug(f'Matched unit with previous id "{dest_unit.id}" to new id "{unit.id}"')
            self.id_mapping[dest_unit.id] = unit.id
            remove_candidates.pop(dest_unit.id, None)
            updated = dataclasses.replace(updated, id=unit.id)

        # Extraction always regenerates these
        return dataclasses.replace(updated, locations=list(unit.locations),
                                   meaning=unit.meaning, description=unit.description)

    def is_untranslated(self, unit: TranslationUnit) -> bool:
        return unit.state == self.initial_state and (unit.target is None or unit.target == unit.source)

    def _new_target(self, unit: TranslationUnit, is_source_lang: bool) -> Optional[str]:
        blank = self.options.new_translation_targets_blank
        if blank == OMIT:
            return None
        if blank and not is_source_lang:
            return ""
        return unit.source

    def _comparable(self, source: str) -> str:
        if self.options.pretty_nested_tags:
            source = pad_tags(source)
        return collapse_whitespace(source) if self.options.collapse_whitespace else source


def _stripped(source: str) -> str:
    return trim_whitespace(collapse_whitespace(source))


def find_close_matches(unit: TranslationUnit,
                       dest_units: List[TranslationUnit]) -> List[Tuple[float, TranslationUnit]]:
    """
    Candidates among `dest_units` whose source is within the fuzzy threshold
    of `unit.source`, best first. The score is the edit distance of the
    trimmed sources relative to the length of the trimmed incoming source.
    """
    text = trim_whitespace(unit.source)
    if not text:
        return []
    scored = [(Levenshtein.distance(text, trim_whitespace(d.source)) / len(text), d) for d in dest_units]
    matches = [m for m in scored if m[0] < FUZZY_THRESHOLD]
    matches.sort(key=lambda m: m[0])
    return matches
