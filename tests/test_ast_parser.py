import unittest

from clang.cindex import CursorKind

from ast_parser import _translation_unit_failure_hint, parse_units
from source_unit import SourceUnit
from tree_compare import signature


FUNCTION = (
    "int f(int x) {",
    "  int i = 0;",
    "  return i + x;",
    "}",
)

FUNCTION_REINDENTED = (
    "int f(int x)",
    "{",
    "        int i = 0;",
    "    return i + x;",
    "}",
)


def parse_one(*lines):
    return parse_units([SourceUnit.from_lines("main.cpp", *lines)])["main.cpp"]


class ParseUnitsTest(unittest.TestCase):
    def test_only_root_has_no_file(self):
        parsed = parse_one(*FUNCTION)
        root = parsed.nodes[0]
        self.assertEqual(root["kind"], CursorKind.TRANSLATION_UNIT)
        self.assertEqual([n for n in parsed.nodes[1:] if n["file"] is None], [])

    def test_builtin_macros_are_not_collected(self):
        parsed = parse_one(*FUNCTION)
        macros = {n["name"] for n in parsed.nodes if n["kind"] == CursorKind.MACRO_DEFINITION}
        self.assertNotIn("__clang__", macros)

    def test_user_macros_are_collected(self):
        parsed = parse_one("#define LIMIT 3", *FUNCTION)
        macros = [n["name"] for n in parsed.nodes if n["kind"] == CursorKind.MACRO_DEFINITION]
        self.assertEqual(macros, ["LIMIT"])

    def test_spans_lie_inside_the_unit(self):
        parsed = parse_one(*FUNCTION)
        size = len(parsed.text)
        for node in parsed.nodes:
            self.assertTrue(0 <= node["start"] <= node["end"] <= size, node["kind"])

    def test_indentation_does_not_change_signature(self):
        self.assertEqual(signature(parse_one(*FUNCTION)), signature(parse_one(*FUNCTION_REINDENTED)))

    def test_crlf_text_keeps_spans(self):
        text = "\r\n".join(FUNCTION) + "\r\n"
        parsed = parse_units([SourceUnit("main.cpp", text)])["main.cpp"]
        literals = [n for n in parsed.nodes if n["kind"] == CursorKind.INTEGER_LITERAL]
        self.assertEqual(len(literals), 1)
        literal = literals[0]
        self.assertEqual(text[literal["start"]:literal["end"]], "0")
        self.assertEqual(literal["line"], 2)

    def test_failure_hint_names_the_unit(self):
        hint = _translation_unit_failure_hint("src/main.cpp")
        self.assertIn("'src/main.cpp'", hint)
        self.assertNotIn("<file>", hint)


if __name__ == "__main__":
    unittest.main()
