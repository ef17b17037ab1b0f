import os
import re

from clang.cindex import CursorKind


LITERAL_KINDS = {
    CursorKind.INTEGER_LITERAL,
    CursorKind.FLOATING_LITERAL,
    CursorKind.STRING_LITERAL,
    CursorKind.CHARACTER_LITERAL,
    CursorKind.CXX_BOOL_LITERAL_EXPR,
    CursorKind.CXX_NULL_PTR_LITERAL_EXPR,
}

CLASS_KINDS = {
    CursorKind.CLASS_DECL,
    CursorKind.STRUCT_DECL,
    CursorKind.CLASS_TEMPLATE,
    CursorKind.UNION_DECL,
}

_STRING_RE = re.compile(r'^(?:u8|u|U|L)?"(.*)"$', re.DOTALL)
_RAW_STRING_RE = re.compile(r'^(?:u8|u|U|L)?R"([^(]*)\((.*)\)\1"$', re.DOTALL)


class ByteOffsets:
    """
    Converts libclang byte offsets into character offsets of the unit text.
    """

    def __init__(self, text):
        self._data = text.encode("utf-8")
        self._ascii = len(self._data) == len(text)
        self._cache = {}

    def to_char(self, byte_offset):
        if self._ascii:
            return byte_offset
        cached = self._cache.get(byte_offset)
        if cached is None:
            cached = len(self._data[:byte_offset].decode("utf-8", errors="replace"))
            self._cache[byte_offset] = cached
        return cached


def _string_value(spelling):
    m = _RAW_STRING_RE.match(spelling)
    if m:
        return m.group(2)
    m = _STRING_RE.match(spelling)
    if m:
        return m.group(1)
    return spelling


def literal_value(cursor):
    """
    Textual value of a literal cursor, without quotes for string literals.
    Adjacent string literals are concatenated. Returns None for non-literals.
    """
    if cursor.kind not in LITERAL_KINDS:
        return None
    tokens = [t.spelling for t in cursor.get_tokens()]
    if not tokens:
        return None
    if cursor.kind == CursorKind.STRING_LITERAL:
        return "".join(_string_value(tok) for tok in tokens)
    return tokens[0]


def walk_ast(cursor, nodes, *, offsets=None, target_file=None, _root=True, _realpath_cache=None):
    """
    Recursively walks a Clang AST cursor and collects all nodes
    into a flat list for the rule engine.

    Each node also keeps its children for rules that need structure,
    its character span in the target file, and for calls the callee
    and argument nodes.
    """

    if _realpath_cache is None:
        _realpath_cache = {}

    cursor_file = cursor.location.file.name if cursor.location.file else None
    if target_file and cursor_file is None and not _root:
        # Builtin macros and other cursors with no file carry offsets
        # into buffers other than the target file.
        return None
    if target_file and cursor_file:
        cached = _realpath_cache.get(cursor_file)
        if cached is None:
            cached = os.path.realpath(cursor_file)
            _realpath_cache[cursor_file] = cached
        if cached != target_file:
            return None

    extent = cursor.extent
    start = extent.start.offset
    end = extent.end.offset
    if offsets is not None:
        start = offsets.to_char(start)
        end = offsets.to_char(end)

    node = {
        "kind": cursor.kind,
        "name": cursor.spelling,
        "line": cursor.location.line,
        "start": start,
        "end": end,
        "literal": literal_value(cursor),
        "children": [],
        "cursor": cursor,
        "file": cursor_file,
    }

    nodes.append(node)

    for child in cursor.get_children():
        child_node = walk_ast(
            child,
            nodes,
            offsets=offsets,
            target_file=target_file,
            _root=False,
            _realpath_cache=_realpath_cache,
        )
        if child_node is not None:
            node["children"].append(child_node)

    if cursor.kind == CursorKind.CALL_EXPR:
        _attach_call_parts(node, list(cursor.get_arguments()))

    return node


def _cursor_key(cursor):
    extent = cursor.extent
    return cursor.kind, extent.start.offset, extent.end.offset


def _attach_call_parts(node, argument_cursors):
    argument_keys = {_cursor_key(arg) for arg in argument_cursors}
    arguments = []
    callee = None
    for child in node["children"]:
        if _cursor_key(child["cursor"]) in argument_keys:
            arguments.append(child)
        elif callee is None and not arguments:
            callee = child
    node["callee"] = callee
    node["arguments"] = arguments


def skip_implicit(node):
    """
    Steps through compiler-inserted wrappers (implicit casts show up as
    UNEXPOSED_EXPR spanning exactly the text of their only child).
    """
    while node is not None and node.get("kind") == CursorKind.UNEXPOSED_EXPR:
        children = node.get("children") or []
        if len(children) != 1:
            break
        child = children[0]
        if child.get("start") != node.get("start") or child.get("end") != node.get("end"):
            break
        node = child
    return node


def qualified_name(cursor):
    parts = []
    while cursor is not None and cursor.kind != CursorKind.TRANSLATION_UNIT:
        parts.append(cursor.spelling or "(anonymous)")
        cursor = cursor.semantic_parent
    return "::".join(reversed(parts))


def resolve_static_member(node):
    """
    Returns (qualified owner, member name) for a call or callee expression
    that refers to a free function or a static member function, otherwise
    None.
    """
    node = skip_implicit(node)
    cursor = node.get("cursor") if node else None
    if cursor is None:
        return None

    decl = cursor.referenced
    if decl is None:
        return None
    if decl.kind not in (CursorKind.FUNCTION_DECL, CursorKind.CXX_METHOD, CursorKind.FUNCTION_TEMPLATE):
        return None

    owner = decl.semantic_parent
    if owner is not None and owner.kind in CLASS_KINDS and not decl.is_static_method():
        return None

    return qualified_name(owner), decl.spelling
