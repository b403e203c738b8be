import unittest

from xliffmerge.config.options import MergeOptions
from xliffmerge.merger import Merger, find_close_matches
from xliffmerge.xliff_obj import AdditionalAttribute, FileLocation, TranslationFile, TranslationUnit


def source_file(*units: TranslationUnit) -> TranslationFile:
    return TranslationFile(list(units), "en")


def target_file(*units: TranslationUnit) -> TranslationFile:
    return TranslationFile(list(units), "en", "de")


def merge(incoming: TranslationFile, dest: TranslationFile, is_source_lang: bool = False, **options):
    merger = Merger(MergeOptions(**options), incoming, "new")
    merged, mapping = merger.merge_with_mapping(dest, is_source_lang)
    return merged, mapping, merger


class TestFuzzyMatching(unittest.TestCase):
    def setUp(self):
        self.incoming = source_file(
            TranslationUnit("a1", "aaaaaaaaaaa1", additional_attributes=[AdditionalAttribute("a", "b")]),
            TranslationUnit("a2", "aaaaaaaaaaa2"),
            TranslationUnit("b", "bbbbbbb"),
            TranslationUnit("c", "ccccccc"),
        )
        self.dest = target_file(
            TranslationUnit("1.1", "aaaaaaaaaa11", "aaa1", "translated"),
            TranslationUnit("1.2", "aaaaaaaaaa22                ", "aaa2", "translated",
                            additional_attributes=[AdditionalAttribute("A", "B")]),
            TranslationUnit("2", "bbbbbb1", "bbb1", "translated", additional_attributes=[AdditionalAttribute("A2", "B")]),
            TranslationUnit("3", "ccccccc", "ccc1", "translated", additional_attributes=[AdditionalAttribute("A3", "B")]),
        )

    def test_fuzzy_match(self):
        merged, mapping, merger = merge(self.incoming, self.dest, fuzzy_match=True)

        self.assertEqual(merged.units, [
            TranslationUnit("a1", "aaaaaaaaaaa1", "aaa1", "new"),
            TranslationUnit("a2", "aaaaaaaaaaa2", "aaa2", "new", additional_attributes=[AdditionalAttribute("A", "B")]),
            TranslationUnit("b", "bbbbbbb", "bbb1", "new", additional_attributes=[AdditionalAttribute("A2", "B")]),
            TranslationUnit("c", "ccccccc", "ccc1", "translated", additional_attributes=[AdditionalAttribute("A3", "B")]),
        ])
        self.assertEqual(mapping, {"1.1": "a1", "1.2": "a2", "2": "b", "3": "c"})
        self.assertEqual(merger.added_ids, [])
        self.assertEqual(merged.target_lang, "de")

    def test_without_fuzzy_match(self):
        merged, mapping, merger = merge(self.incoming, self.dest, fuzzy_match=False)

        self.assertEqual([u.id for u in merged.units], ["a1", "a2", "b", "c"])
        self.assertEqual([u.target for u in merged.units], ["aaaaaaaaaaa1", "aaaaaaaaaaa2", "bbbbbbb", "ccccccc"])
        self.assertEqual(mapping, {})
        self.assertEqual(merger.added_ids, ["a1", "a2", "b", "c"])

    def test_candidate_is_used_once(self):
        incoming = source_file(TranslationUnit("x", "hello world!"), TranslationUnit("y", "hello world?"))
        dest = target_file(TranslationUnit("old", "hello world.", "Hallo Welt.", "translated"))

        merged, mapping, merger = merge(incoming, dest)

        self.assertEqual(mapping, {"old": "x"})
        self.assertEqual([(u.id, u.target) for u in merged.units], [("x", "Hallo Welt."), ("y", "hello world?")])
        self.assertEqual(merger.added_ids, ["y"])

    def test_best_score_wins_over_incoming_order(self):
        incoming = source_file(TranslationUnit("x", "abcdefghij1"), TranslationUnit("y", "abcdefghijk"))
        dest = target_file(TranslationUnit("old", "abcdefghijk", "T", "translated"))

        merged, mapping, _ = merge(incoming, dest)

        self.assertEqual(mapping, {"old": "y"})
        self.assertEqual([u.id for u in merged.units], ["y", "x"])
        self.assertEqual(merged.get_unit("y").state, "translated")

    def test_next_candidate_after_best_is_taken(self):
        incoming = source_file(TranslationUnit("x", "abcdefghij"), TranslationUnit("y", "abcdefghik"))
        dest = target_file(TranslationUnit("d1", "abcdefghij", "T1", "translated"),
                           TranslationUnit("d2", "abcdefghiz", "T2", "translated"))

        merged, mapping, _ = merge(incoming, dest)

        self.assertEqual(mapping, {"d1": "x", "d2": "y"})
        self.assertEqual([(u.id, u.target) for u in merged.units], [("x", "T1"), ("y", "T2")])

    def test_close_matches(self):
        dest = [TranslationUnit("1", " abcdefghij "), TranslationUnit("2", "abcdefghiz"), TranslationUnit("3", "xyz")]
        matches = find_close_matches(TranslationUnit("n", "abcdefghij"), dest)

        self.assertEqual([(score, unit.id) for score, unit in matches], [(0.0, "1"), (0.1, "2")])
        self.assertEqual(find_close_matches(TranslationUnit("n", "   "), dest), [])


class TestHandle(unittest.TestCase):
    def test_new_unit(self):
        merged, _, merger = merge(source_file(TranslationUnit("ID2", "source val2")), target_file())

        self.assertEqual(merged.units, [TranslationUnit("ID2", "source val2", "source val2", "new")])
        self.assertEqual(merger.added_ids, ["ID2"])

    def test_new_unit_blank_target(self):
        incoming = source_file(TranslationUnit("ID2", "source val2"))

        merged, _, _ = merge(incoming, target_file(), new_translation_targets_blank=True)
        self.assertEqual(merged.units[0].target, "")

        merged, _, _ = merge(incoming, target_file(), new_translation_targets_blank="omit")
        self.assertIsNone(merged.units[0].target)
        self.assertEqual(merged.units[0].state, "new")

    def test_new_unit_in_source_language_file(self):
        incoming = source_file(TranslationUnit("ID2", "source val2"))

        merged, _, _ = merge(incoming, target_file(), is_source_lang=True, new_translation_targets_blank=True)

        self.assertEqual(merged.units, [TranslationUnit("ID2", "source val2", "source val2", "final")])

    def test_untranslated_target_follows_source(self):
        merged, _, _ = merge(source_file(TranslationUnit("ID1", "new")),
                             target_file(TranslationUnit("ID1", "old", "old", "new")))

        self.assertEqual(merged.units, [TranslationUnit("ID1", "new", "new", "new")])

    def test_untranslated_without_target(self):
        dest = target_file(TranslationUnit("ID1", "old", None, "new"))

        merged, _, _ = merge(source_file(TranslationUnit("ID1", "new")), dest)
        self.assertEqual(merged.units[0].target, "new")

        merged, _, _ = merge(source_file(TranslationUnit("ID1", "new")), dest, new_translation_targets_blank="omit")
        self.assertIsNone(merged.units[0].target)

    def test_translated_target_is_kept(self):
        incoming = source_file(TranslationUnit("ID1", "new"))
        dest = target_file(TranslationUnit("ID1", "old", "translated val", "translated"))

        merged, _, _ = merge(incoming, dest)
        self.assertEqual(merged.units, [TranslationUnit("ID1", "new", "translated val", "new")])

        merged, _, _ = merge(incoming, dest, reset_translation_state=False)
        self.assertEqual(merged.units, [TranslationUnit("ID1", "new", "translated val", "translated")])

    def test_unchanged_units_are_untouched(self):
        units = [TranslationUnit("ID1", "a", "A", "translated", locations=[FileLocation("app.ts", 1)]),
                 TranslationUnit("ID2", "b", "b", "new", meaning="m")]

        merged, mapping, merger = merge(source_file(*units), target_file(*units))

        self.assertEqual(merged.units, units)
        self.assertEqual(mapping, {})
        self.assertEqual(merger.added_ids, [])

    def test_source_language_mirror(self):
        incoming = source_file(TranslationUnit("ID1", "new"), TranslationUnit("ID2", "changed"))
        dest = target_file(TranslationUnit("ID1", "old", "old", "final"),
                           TranslationUnit("ID2", "before", "edited", "final"))

        merged, _, _ = merge(incoming, dest, is_source_lang=True)

        self.assertEqual(merged.units, [TranslationUnit("ID1", "new", "new", "final"),
                                        TranslationUnit("ID2", "changed", "edited", "final")])

    def test_added_leading_and_trailing_whitespace(self):
        merged, _, _ = merge(source_file(TranslationUnit("a1", " This is some text ")),
                             target_file(TranslationUnit("a1", "This is some text", "Dies ist ein Text", "final")))

        self.assertEqual(merged.units, [TranslationUnit("a1", " This is some text ", " Dies ist ein Text ", "final")])

    def test_removed_leading_and_trailing_whitespace(self):
        merged, _, _ = merge(source_file(TranslationUnit("a1", "This is some text")),
                             target_file(TranslationUnit("a1", " This is some text ", " Dies ist ein Text ", "final")))

        self.assertEqual(merged.units, [TranslationUnit("a1", "This is some text", "Dies ist ein Text", "final")])

    def test_collapsed_whitespace_is_no_change(self):
        merged, _, _ = merge(source_file(TranslationUnit("a1", "some  text")),
                             target_file(TranslationUnit("a1", "some \n text", "Text", "translated")))

        self.assertEqual(merged.units, [TranslationUnit("a1", "some \n text", "Text", "translated")])

        merged, _, _ = merge(source_file(TranslationUnit("a1", "some  text")),
                             target_file(TranslationUnit("a1", "some \n text", "Text", "translated")),
                             collapse_whitespace=False)
        self.assertEqual(merged.units, [TranslationUnit("a1", "some  text", "Text", "translated")])

    def test_pretty_nested_tags_compare_equal(self):
        pretty = '\n  <x id="0"/>\n  <x id="1"/>\n'
        merged, _, _ = merge(source_file(TranslationUnit("a1", '<x id="0"/><x id="1"/>')),
                             target_file(TranslationUnit("a1", pretty, "T", "translated")),
                             pretty_nested_tags=True)

        self.assertEqual(merged.units[0].source, pretty)
        self.assertEqual(merged.units[0].state, "translated")

    def test_extracted_metadata_overwrites(self):
        incoming = source_file(TranslationUnit("ID1", "a", meaning="new meaning", locations=[FileLocation("b.ts", 2)]))
        dest = target_file(TranslationUnit("ID1", "a", "A", "translated", meaning="old", description="old description",
                                           locations=[FileLocation("a.ts", 1)],
                                           additional_attributes=[AdditionalAttribute("approved", "yes")]))

        merged, _, _ = merge(incoming, dest)

        self.assertEqual(merged.units, [TranslationUnit(
            "ID1", "a", "A", "translated", meaning="new meaning", description=None,
            locations=[FileLocation("b.ts", 2)], additional_attributes=[AdditionalAttribute("approved", "yes")])])


class TestObsoleteUnits(unittest.TestCase):
    def test_obsolete_units_are_removed(self):
        incoming = source_file(TranslationUnit("keep", "keep me"), TranslationUnit("new", "totally different"))
        dest = target_file(TranslationUnit("gone", "something else", "X", "translated"),
                           TranslationUnit("keep", "keep me", "K", "translated"))

        merged, mapping, merger = merge(incoming, dest)

        self.assertEqual([u.id for u in merged.units], ["keep", "new"])
        self.assertEqual(mapping, {})
        self.assertEqual(merger.added_ids, ["new"])

    def test_dest_file_is_not_modified(self):
        dest_units = [TranslationUnit("old", "abcdefghij", "T", "translated")]
        dest = target_file(*dest_units)

        merge(source_file(TranslationUnit("renamed", "abcdefghik")), dest)

        self.assertEqual([u.id for u in dest.units], ["old"])
        self.assertEqual(dest.units[0].source, "abcdefghij")

    def test_merger_is_reusable(self):
        incoming = source_file(TranslationUnit("renamed", "abcdefghik"))
        merger = Merger(MergeOptions(), incoming, "new")

        _, first = merger.merge_with_mapping(target_file(TranslationUnit("old", "abcdefghij", "T", "translated")), False)
        _, second = merger.merge_with_mapping(target_file(), False)

        self.assertEqual(first, {"old": "renamed"})
        self.assertEqual(second, {})
        self.assertEqual(merger.added_ids, ["renamed"])


if __name__ == "__main__":
    unittest.main()
