import logging
import os
import shlex
import subprocess
import tempfile
import time

from clang import cindex
from clang.cindex import Diagnostic, TokenKind

from ast_walker import ByteOffsets, walk_ast
from errors import CompileError
from source_unit import write_units


logger = logging.getLogger(__name__)

_LIBRARY_NAMES = ("libclang.so", "libclang.dylib", "libclang.dll")


def _library_in(directory):
    for name in _LIBRARY_NAMES:
        for candidate in (os.path.join(directory, name), os.path.join(directory, "lib", name)):
            if os.path.exists(candidate):
                return candidate
    return None


def _find_libclang():
    """
    Explicit LIBCLANG_FILE / LIBCLANG_PATH first, then a library shipped
    next to this module or in an LLVM install. None lets the libclang
    wheel load its bundled copy.
    """
    configured = os.environ.get("LIBCLANG_FILE") or os.environ.get("LIBCLANG_PATH")
    if configured:
        if os.path.isfile(configured):
            return configured
        if os.path.isdir(configured):
            found = _library_in(configured)
            if found:
                return found
        logger.debug("Ignoring libclang location %s: no library found", configured)

    search = [os.path.dirname(os.path.abspath(__file__))]
    search += ["/opt/homebrew/opt/llvm", "/usr/local/opt/llvm"]
    for directory in search:
        found = _library_in(directory)
        if found:
            return found
    return None


libclang_path = _find_libclang()
if libclang_path:
    cindex.Config.set_library_file(libclang_path)


DEFAULT_ARGS = ["-x", "c++", "-std=gnu++17"]


def _translation_unit_failure_hint(name):
    return (
        f"libclang could not load unit '{name}'. "
        "Check the unit's #include names against the other units and any "
        "extra arguments in REFACTOR_CLANG_ARGS."
    )


def _sdk_args():
    try:
        sdk_path = subprocess.check_output(
            ["xcrun", "--show-sdk-path"],
            stderr=subprocess.DEVNULL,
            text=True,
        ).strip()
    except (OSError, subprocess.CalledProcessError):
        return []
    if not sdk_path:
        return []
    return [
        "-isysroot",
        sdk_path,
        "-I",
        os.path.join(sdk_path, "usr/include/c++/v1"),
    ]


def compiler_args(root, extra_args=None):
    env_args = shlex.split(os.environ.get("REFACTOR_CLANG_ARGS", ""))
    return DEFAULT_ARGS + ["-I", root] + _sdk_args() + env_args + list(extra_args or [])


class ParsedUnit:
    """
    One parsed unit: its text, the nodes located in the unit's own file,
    and its non-comment tokens as (start, end, spelling).
    """

    def __init__(self, unit, nodes, tokens):
        self.unit = unit
        self.nodes = nodes
        self.tokens = tokens

    @property
    def name(self):
        return self.unit.name

    @property
    def text(self):
        return self.unit.text


class ParsedProgram:
    def __init__(self, units, timing_ms):
        self.units = units
        self.timing_ms = timing_ms

    def __iter__(self):
        return iter(self.units)

    def __getitem__(self, name):
        for parsed in self.units:
            if parsed.name == name:
                return parsed
        raise KeyError(name)


def _unit_name(root, filename):
    if not filename:
        return None
    rel = os.path.relpath(os.path.realpath(filename), root)
    if rel.startswith(".."):
        return filename
    return rel.replace(os.sep, "/")


def _first_error(translation_unit, root):
    for diag in translation_unit.diagnostics:
        if diag.severity < Diagnostic.Error:
            continue
        loc = diag.location
        location = None
        if loc is not None and loc.file is not None:
            location = f"{_unit_name(root, loc.file.name)}:{loc.line}:{loc.column}"
        return location, diag.spelling
    return None


def _unit_tokens(translation_unit, path, text, offsets):
    size = len(text.encode("utf-8"))
    extent = translation_unit.get_extent(path, (0, size))
    tokens = []
    for token in translation_unit.get_tokens(extent=extent):
        if token.kind == TokenKind.COMMENT:
            continue
        tokens.append(
            (
                offsets.to_char(token.extent.start.offset),
                offsets.to_char(token.extent.end.offset),
                token.spelling,
            )
        )
    return tokens


def parse_units(units, extra_args=None):
    """
    Parses all units in one pass. Every unit is materialized in the same
    private workspace before any of them is parsed, so units can #include
    each other and cross-unit references resolve.

    Raises CompileError on the first error diagnostic of any unit.
    """
    units = list(units)
    timing_start = time.perf_counter()
    index = cindex.Index.create()
    options = cindex.TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD
    parsed = []

    with tempfile.TemporaryDirectory(prefix="refactor-") as td:
        root = os.path.realpath(td)
        paths = write_units(root, units)
        args = compiler_args(root, extra_args)

        parse_ms = 0.0
        traversal_ms = 0.0
        for unit in units:
            path = paths[unit.name]
            parse_start = time.perf_counter()
            try:
                translation_unit = index.parse(path, args=args, options=options)
            except cindex.TranslationUnitLoadError as exc:
                raise CompileError(unit.name, _translation_unit_failure_hint(unit.name)) from exc
            parse_ms += (time.perf_counter() - parse_start) * 1000.0

            error = _first_error(translation_unit, root)
            if error is not None:
                location, message = error
                logger.debug("Compile error in %s at %s: %s", unit.name, location, message)
                raise CompileError(location or unit.name, message)

            traversal_start = time.perf_counter()
            offsets = ByteOffsets(unit.text)
            nodes = []
            walk_ast(translation_unit.cursor, nodes, offsets=offsets, target_file=path)
            if nodes:
                nodes[0]["start"] = 0
                nodes[0]["end"] = len(unit.text)
            tokens = _unit_tokens(translation_unit, path, unit.text, offsets)
            traversal_ms += (time.perf_counter() - traversal_start) * 1000.0

            parsed.append(ParsedUnit(unit, nodes, tokens))

    timing = {"parse": parse_ms, "traversal": traversal_ms}
    logger.debug(
        "Parsed %d unit(s) in %.3f ms",
        len(parsed),
        (time.perf_counter() - timing_start) * 1000.0,
    )
    return ParsedProgram(parsed, timing)
