import unittest

from clang.cindex import CursorKind

from errors import EditError, OverlappingEditsError
from refactor import Description, RefactorEdit, delete, postfix_with, prefix_with, replace
from source_unit import SourceUnit
from transform_applier import apply_edits, apply_to_text


TEXT = "int f() {\n  return i;\n}\n"


def span_of(text, fragment):
    start = text.index(fragment)
    return start, start + len(fragment)


class ApplyToTextTest(unittest.TestCase):
    def test_single_replacement(self):
        start, end = span_of(TEXT, "return i")
        out = apply_to_text("a.cpp", TEXT, [RefactorEdit("a.cpp", start, end, "return 0")])
        self.assertEqual(out, "int f() {\n  return 0;\n}\n")

    def test_offsets_refer_to_original_text(self):
        text = "aaa bbb ccc"
        edits = [
            RefactorEdit("a.cpp", 8, 11, "C"),
            RefactorEdit("a.cpp", 0, 3, "a-much-longer-replacement"),
            RefactorEdit("a.cpp", 4, 7, ""),
        ]
        self.assertEqual(apply_to_text("a.cpp", text, edits), "a-much-longer-replacement  C")

    def test_equivalent_to_concatenating_spans(self):
        text = "0123456789"
        edits = [RefactorEdit("a.cpp", 2, 4, "X"), RefactorEdit("a.cpp", 6, 9, "YY")]
        expected = text[:2] + "X" + text[4:6] + "YY" + text[9:]
        self.assertEqual(apply_to_text("a.cpp", text, edits), expected)

    def test_reapplying_is_deterministic(self):
        edits = [RefactorEdit("a.cpp", 0, 3, "long"), RefactorEdit("a.cpp", 4, 5, "g")]
        first = apply_to_text("a.cpp", TEXT, edits)
        second = apply_to_text("a.cpp", TEXT, list(reversed(edits)))
        self.assertEqual(first, second)

    def test_adjacent_edits_are_allowed(self):
        out = apply_to_text("a.cpp", "abcdef", [RefactorEdit("a.cpp", 0, 3, "X"), RefactorEdit("a.cpp", 3, 6, "Y")])
        self.assertEqual(out, "XY")

    def test_insertions_at_same_offset_keep_order(self):
        edits = [RefactorEdit("a.cpp", 3, 3, "1"), RefactorEdit("a.cpp", 3, 3, "2")]
        self.assertEqual(apply_to_text("a.cpp", "abcdef", edits), "abc12def")

    def test_overlapping_edits_raise(self):
        edits = [RefactorEdit("a.cpp", 0, 5, "X"), RefactorEdit("a.cpp", 3, 8, "Y")]
        with self.assertRaises(OverlappingEditsError) as ctx:
            apply_to_text("a.cpp", "0123456789", edits)
        self.assertEqual(ctx.exception.unit, "a.cpp")

    def test_nested_edits_raise(self):
        edits = [RefactorEdit("a.cpp", 0, 9, "X"), RefactorEdit("a.cpp", 2, 3, "Y")]
        with self.assertRaises(OverlappingEditsError):
            apply_to_text("a.cpp", "0123456789", edits)

    def test_insertion_inside_replacement_raises(self):
        edits = [RefactorEdit("a.cpp", 2, 6, "X"), RefactorEdit("a.cpp", 4, 4, "Y")]
        with self.assertRaises(OverlappingEditsError):
            apply_to_text("a.cpp", "0123456789", edits)

    def test_out_of_bounds_edit_raises(self):
        with self.assertRaises(EditError):
            apply_to_text("a.cpp", "abc", [RefactorEdit("a.cpp", 2, 10, "X")])
        with self.assertRaises(EditError):
            apply_to_text("a.cpp", "abc", [RefactorEdit("a.cpp", 2, 1, "X")])

    def test_non_ascii_text_uses_character_offsets(self):
        text = 'const char* s = "größe"; int x = 1;'
        start, end = span_of(text, "1")
        self.assertEqual(apply_to_text("a.cpp", text, [RefactorEdit("a.cpp", start, end, "2")]), text[:-2] + "2;")


class ApplyEditsTest(unittest.TestCase):
    def test_units_do_not_interact(self):
        units = [SourceUnit("a.cpp", "aaaa"), SourceUnit("b.cpp", "bbbb")]
        edits = [RefactorEdit("a.cpp", 0, 4, "A"), RefactorEdit("b.cpp", 0, 4, "B")]
        out = apply_edits(units, edits)
        self.assertEqual([u.text for u in out], ["A", "B"])
        self.assertEqual([u.name for u in out], ["a.cpp", "b.cpp"])

    def test_same_span_in_different_units_is_not_an_overlap(self):
        units = [SourceUnit("a.cpp", "xyz"), SourceUnit("b.cpp", "xyz")]
        edits = [RefactorEdit("a.cpp", 0, 3, "1"), RefactorEdit("b.cpp", 1, 2, "2")]
        self.assertEqual([u.text for u in apply_edits(units, edits)], ["1", "x2z"])

    def test_units_without_edits_are_untouched(self):
        untouched = SourceUnit("b.cpp", "keep me")
        out = apply_edits([SourceUnit("a.cpp", "aaaa"), untouched], [RefactorEdit("a.cpp", 0, 1, "")])
        self.assertIs(out[1], untouched)

    def test_unknown_unit_raises(self):
        with self.assertRaises(EditError):
            apply_edits([SourceUnit("a.cpp", "aaaa")], [RefactorEdit("missing.cpp", 0, 1, "")])

    def test_no_edits(self):
        units = [SourceUnit("a.cpp", TEXT)]
        self.assertEqual(apply_edits(units, []), units)


class EditConstructorsTest(unittest.TestCase):
    NODE = {"kind": CursorKind.RETURN_STMT, "start": 12, "end": 20, "line": 2}

    def test_replace_and_delete(self):
        self.assertEqual(replace(self.NODE, "return 0", "a.cpp"), RefactorEdit("a.cpp", 12, 20, "return 0"))
        self.assertEqual(delete(self.NODE, "a.cpp"), RefactorEdit("a.cpp", 12, 20, ""))

    def test_prefix_and_postfix(self):
        self.assertEqual(
            apply_to_text("a.cpp", TEXT, [prefix_with(self.NODE, "/*a*/", "a.cpp"), postfix_with(self.NODE, "/*b*/", "a.cpp")]),
            "int f() {\n  /*a*/return i/*b*/;\n}\n",
        )

    def test_description_without_fix(self):
        description = Description("Rule", self.NODE, "flagged", None)
        self.assertFalse(description.has_fix)
        self.assertEqual(description.line, 2)
        self.assertTrue(description._replace(edit=delete(self.NODE, "a.cpp")).has_fix)


if __name__ == "__main__":
    unittest.main()
