"""
Composable predicates over walker nodes.

A matcher is a plain function ``matcher(node, context) -> bool``. The
constructors below capture their configuration when called and return such
functions, so combinators nest to any depth. Matchers never raise: missing
structure (no callee, too few arguments, no cursor) or a kind mismatch
evaluates to False.
"""

import re
from collections import namedtuple

from clang.cindex import CursorKind

from ast_walker import resolve_static_member, skip_implicit


class ResolutionContext(namedtuple("ResolutionContext", ["unit", "resolve"])):
    """
    Per-call context handed to every matcher. ``resolve(node)`` returns
    ``(qualified_owner, member)`` or None when the node does not refer to a
    free or static function.
    """

    __slots__ = ()

    @classmethod
    def for_unit(cls, unit, resolve=resolve_static_member):
        return cls(unit, resolve)


def _is_call(node):
    return node is not None and node.get("kind") == CursorKind.CALL_EXPR


def kind_is(kind):
    def matcher(node, context):
        return node is not None and node.get("kind") == kind

    return matcher


def literal_text_excludes(pattern):
    """
    True iff the node is a literal whose value has no match for pattern.
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern

    def matcher(node, context):
        node = skip_implicit(node)
        if node is None:
            return False
        value = node.get("literal")
        if value is None:
            return False
        return regex.search(value) is None

    return matcher


def callee_of(inner):
    def matcher(node, context):
        node = skip_implicit(node)
        if not _is_call(node):
            return False
        callee = node.get("callee")
        if callee is None:
            return False
        return inner(skip_implicit(callee), context)

    return matcher


def argument_at(index, inner):
    def matcher(node, context):
        node = skip_implicit(node)
        if not _is_call(node) or index < 0:
            return False
        arguments = node.get("arguments") or []
        if index >= len(arguments):
            return False
        return inner(skip_implicit(arguments[index]), context)

    return matcher


def references_static_member(owner, member):
    """
    Matches a call, or a callee expression, that resolves to exactly
    ``owner::member``. Unresolved references never match.
    """
    target = (owner, member)

    def matcher(node, context):
        if node is None or context is None or context.resolve is None:
            return False
        return context.resolve(node) == target

    return matcher


def all_of(*matchers):
    def matcher(node, context):
        for m in matchers:
            if not m(node, context):
                return False
        return True

    return matcher


def any_of(*matchers):
    def matcher(node, context):
        for m in matchers:
            if m(node, context):
                return True
        return False

    return matcher


def not_(inner):
    def matcher(node, context):
        return not inner(node, context)

    return matcher
