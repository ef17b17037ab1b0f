"""
Harness for checking what a rule's fixes do to sample sources.

    RefactoringTestHelper.new_instance(MyRule())
        .add_input_lines("in/test.cpp", "int f() { return 1; }")
        .add_output_lines("out/test.cpp", "int f() { return 0; }")
        .do_test()

Inputs and expectations pair up by call order: each ``add_output_lines`` or
``expect_unchanged`` call pairs with the most recently added input that has
no expectation yet. Output names are informational only; the refactored
text of an input is always compared under the input's name.
"""

import enum
import logging
import time

from ast_parser import parse_units
from errors import CompileError, MismatchError, UsageError
from rule_engine import RuleEngine, edits_of
from source_unit import SourceUnit, normalize_unit_name
from transform_applier import apply_edits
from tree_compare import signature


logger = logging.getLogger(__name__)


class TestMode(enum.Enum):
    # Exact, whitespace-sensitive comparison of the output text.
    TEXT_MATCH = "text_match"
    # Re-parse both sides and compare tree structure, ignoring layout.
    AST_MATCH = "ast_match"


def _round_ms(value):
    return round(max(0.0, float(value)), 3)


class Verdict:
    PASS = "pass"
    MISMATCH = "mismatch"
    COMPILE_ERROR = "compile_error"
    USAGE_ERROR = "usage_error"

    def __init__(
        self,
        status,
        *,
        unit=None,
        actual=None,
        expected=None,
        location=None,
        message=None,
        mode=None,
        timing_ms=None,
    ):
        self.status = status
        self.unit = unit
        self.actual = actual
        self.expected = expected
        self.location = location
        self.message = message
        self.mode = mode
        self.timing_ms = timing_ms or {}

    @property
    def ok(self):
        return self.status == self.PASS

    def raise_for_status(self):
        if self.status == self.USAGE_ERROR:
            raise UsageError(self.message)
        if self.status == self.COMPILE_ERROR:
            raise CompileError(self.location, self.message)
        if self.status == self.MISMATCH:
            mode = self.mode.name if self.mode is not None else None
            raise MismatchError(self.unit, self.actual, self.expected, mode)

    def __repr__(self):
        detail = self.unit or self.location or self.message or ""
        return f"Verdict({self.status}{', ' + detail if detail else ''})"


class RefactoringTestHelper:
    def __init__(self, rule, extra_args=None):
        self.rule = rule
        self.extra_args = list(extra_args or [])
        self._inputs = []
        self._expected = []
        self._problems = []

    @classmethod
    def new_instance(cls, rule, extra_args=None):
        return cls(rule, extra_args=extra_args)

    def add_input_lines(self, name, *lines):
        normalized = normalize_unit_name(name)
        if normalized is None:
            self._problems.append(f"Invalid input unit name {name!r}.")
            normalized = name
        elif any(unit.name == normalized for unit in self._inputs):
            self._problems.append(f"Input unit '{normalized}' was added more than once.")
        self._inputs.append(SourceUnit.from_lines(normalized, *lines))
        self._expected.append(None)
        return self

    def add_output_lines(self, name, *lines):
        index = self._pending_index()
        if index is None:
            self._problems.append(f"add_output_lines('{name}') has no unpaired input to pair with.")
        else:
            self._expected[index] = SourceUnit.from_lines(name, *lines)
        return self

    def expect_unchanged(self):
        index = self._pending_index()
        if index is None:
            self._problems.append("expect_unchanged() has no unpaired input to pair with.")
        else:
            self._expected[index] = self._inputs[index]
        return self

    def _pending_index(self):
        for index in range(len(self._inputs) - 1, -1, -1):
            if self._expected[index] is None:
                return index
        return None

    def _finalize(self):
        problems = list(self._problems)
        if not self._inputs:
            problems.append("No input units were added.")
        for unit, expected in zip(self._inputs, self._expected):
            if expected is None:
                problems.append(f"Input unit '{unit.name}' has no paired expectation.")
        if problems:
            raise UsageError(" ".join(problems))
        return list(zip(self._inputs, self._expected))

    def do_test(self, mode=TestMode.AST_MATCH):
        """
        Runs the case and raises on anything but a pass: UsageError,
        CompileError, or MismatchError (an AssertionError).
        """
        self.run(mode).raise_for_status()

    def run(self, mode=TestMode.AST_MATCH):
        total_start = time.perf_counter()
        timing = {"parse": 0.0, "traversal": 0.0, "interpretation": 0.0, "compare": 0.0}

        def finish(status, **kwargs):
            timing["total"] = (time.perf_counter() - total_start) * 1000.0
            verdict = Verdict(
                status,
                mode=mode,
                timing_ms={key: _round_ms(value) for key, value in timing.items()},
                **kwargs,
            )
            logger.debug("%r in %.3f ms", verdict, timing["total"])
            return verdict

        try:
            cases = self._finalize()
        except UsageError as exc:
            return finish(Verdict.USAGE_ERROR, message=str(exc))

        inputs = [unit for unit, _expected in cases]
        try:
            program = parse_units(inputs, self.extra_args)
        except CompileError as exc:
            return finish(Verdict.COMPILE_ERROR, location=exc.location, message=exc.message)
        timing["parse"] += program.timing_ms["parse"]
        timing["traversal"] += program.timing_ms["traversal"]

        interpretation_start = time.perf_counter()
        engine = RuleEngine([self.rule])
        edits = []
        for parsed in program:
            edits.extend(edits_of(engine.run_unit(parsed)))
        actual_units = apply_edits(inputs, edits)
        timing["interpretation"] = (time.perf_counter() - interpretation_start) * 1000.0

        compare_start = time.perf_counter()
        if mode == TestMode.TEXT_MATCH:
            failure = self._compare_text(cases, actual_units)
        else:
            failure = self._compare_trees(cases, actual_units, timing)
        timing["compare"] = (time.perf_counter() - compare_start) * 1000.0

        if failure is None:
            return finish(Verdict.PASS)
        status, kwargs = failure
        return finish(status, **kwargs)

    def _compare_text(self, cases, actual_units):
        for (unit, expected), actual in zip(cases, actual_units):
            if actual.text != expected.text:
                return Verdict.MISMATCH, {"unit": unit.name, "actual": actual.text, "expected": expected.text}
        return None

    def _compare_trees(self, cases, actual_units, timing):
        # Expected texts are materialized under the input names so that
        # includes between units resolve the same way on both sides.
        expected_units = [SourceUnit(unit.name, expected.text) for unit, expected in cases]

        try:
            expected_program = parse_units(expected_units, self.extra_args)
        except CompileError as exc:
            return Verdict.COMPILE_ERROR, {"location": exc.location, "message": f"expected output: {exc.message}"}

        try:
            actual_program = parse_units(actual_units, self.extra_args)
        except CompileError as exc:
            broken = self._unit_at(exc.location, cases, actual_units)
            (unit, expected), actual = broken
            logger.debug("Refactored output of %s no longer compiles: %s", unit.name, exc)
            return Verdict.MISMATCH, {
                "unit": unit.name,
                "actual": actual.text,
                "expected": expected.text,
                "message": f"refactored output does not compile: {exc}",
            }

        for parsed in (expected_program, actual_program):
            timing["parse"] += parsed.timing_ms["parse"]
            timing["traversal"] += parsed.timing_ms["traversal"]

        for (unit, expected), actual in zip(cases, actual_units):
            if signature(actual_program[unit.name]) != signature(expected_program[unit.name]):
                return Verdict.MISMATCH, {"unit": unit.name, "actual": actual.text, "expected": expected.text}
        return None

    def _unit_at(self, location, cases, actual_units):
        pairs = list(zip(cases, actual_units))
        name = (location or "").split(":", 1)[0]
        for pair in pairs:
            if pair[0][0].name == name:
                return pair
        for pair in pairs:
            if pair[1].text != pair[0][0].text:
                return pair
        return pairs[0]
