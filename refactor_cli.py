import json
import logging
import os
import sys
import time

from ast_parser import parse_units
from engine_factory import ALL_RULE_NAMES, build_engine
from errors import CompileError, EditError
from rule_engine import edits_of
from source_unit import SourceUnit
from transform_applier import apply_to_text


def _round_ms(value):
    return round(max(0.0, float(value)), 3)


def _item(description):
    return {
        "rule": description.rule,
        "line": description.line,
        "message": description.message,
        "has_fix": description.has_fix,
    }


def _error_result(filename, message, timing):
    return {
        "file": os.path.basename(filename),
        "path": os.path.realpath(filename),
        "ok": False,
        "error": message,
        "items": [],
        "edits": 0,
        "applied": False,
        "timing_ms": timing,
    }


def _take_values(args, flag):
    values = []
    rest = []
    idx = 0
    while idx < len(args):
        if args[idx] == flag:
            if idx + 1 >= len(args):
                raise ValueError(f"Missing value after {flag}.")
            values.append(args[idx + 1])
            idx += 2
            continue
        rest.append(args[idx])
        idx += 1
    return values, rest


def _fail(message, json_mode):
    if json_mode:
        print(json.dumps({"ok": False, "error": message}))
    else:
        print(message)
    return 2


def run_file(filename, engine, extra_args=None, apply=False):
    start = time.perf_counter()
    try:
        with open(filename, encoding="utf-8", newline="") as fh:
            text = fh.read()
    except OSError as exc:
        return _error_result(filename, f"Failed to read {filename}: {exc}", {"total": _round_ms(0.0)})

    unit = SourceUnit(os.path.basename(filename), text)
    args = list(extra_args or []) + ["-I", os.path.dirname(os.path.realpath(filename))]
    try:
        program = parse_units([unit], args)
    except CompileError as exc:
        timing = {"total": _round_ms((time.perf_counter() - start) * 1000.0)}
        return _error_result(filename, f"Failed to parse {unit.name}: {exc}", timing)

    interpretation_start = time.perf_counter()
    descriptions = engine.run_unit(program[unit.name])
    edits = edits_of(descriptions)
    applied = False
    error = None
    if apply and edits:
        try:
            fixed = apply_to_text(unit.name, text, edits)
        except EditError as exc:
            error = str(exc)
        else:
            with open(filename, "w", encoding="utf-8", newline="") as fh:
                fh.write(fixed)
            applied = True
    interpretation_ms = (time.perf_counter() - interpretation_start) * 1000.0

    timing = {
        "parse": _round_ms(program.timing_ms["parse"]),
        "traversal": _round_ms(program.timing_ms["traversal"]),
        "interpretation": _round_ms(interpretation_ms),
        "total": _round_ms((time.perf_counter() - start) * 1000.0),
    }
    return {
        "file": unit.name,
        "path": os.path.realpath(filename),
        "ok": error is None,
        "error": error,
        "items": [_item(d) for d in sorted(descriptions, key=lambda d: d.line or 10**9)],
        "edits": len(edits),
        "applied": applied,
        "timing_ms": timing,
    }


def _print_text(result, many):
    if many:
        print(f"=== {result['file']} ===")
    if result["error"]:
        print(f"[ERROR] {result['error']}")
    for item in result["items"]:
        fix = " (fix available)" if item["has_fix"] else ""
        print(f"[WARN] {item['rule']} on line {item['line']}: {item['message']}{fix}")
    if result["applied"]:
        print(f"Applied {result['edits']} edit(s).")
    print(f"[timing] total: {result['timing_ms']['total']} ms.")


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    json_mode = "--text" not in args
    apply = "--apply" in args
    verbose = "--verbose" in args
    args = [a for a in args if a not in {"--text", "--apply", "--verbose"}]

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    try:
        raw_rules, args = _take_values(args, "--rules")
        extra_args, args = _take_values(args, "--arg")
    except ValueError as exc:
        return _fail(str(exc), json_mode)

    enabled_rules = None
    if raw_rules:
        enabled_rules = [r.strip() for value in raw_rules for r in value.split(",") if r.strip()]
        unknown = sorted({r for r in enabled_rules if r not in ALL_RULE_NAMES})
        if unknown:
            return _fail(
                "Unknown rule(s): " + ", ".join(unknown) + ". Valid rules: " + ", ".join(sorted(ALL_RULE_NAMES)) + ".",
                json_mode,
            )

    files = args
    if not files:
        return _fail("No files provided.", json_mode)

    selected = sorted(set(enabled_rules) if enabled_rules is not None else ALL_RULE_NAMES)
    engine = build_engine(selected)

    overall_start = time.perf_counter()
    results = []
    for idx, filename in enumerate(files):
        result = run_file(filename, engine, extra_args, apply=apply)
        results.append(result)
        if not json_mode:
            _print_text(result, len(files) > 1)
            if idx < len(files) - 1:
                print()

    if json_mode:
        print(
            json.dumps(
                {
                    "ok": True,
                    "results": results,
                    "timing_ms": {"total": _round_ms((time.perf_counter() - overall_start) * 1000.0)},
                    "rules": selected,
                }
            )
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
