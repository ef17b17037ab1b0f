import re

from clang.cindex import CursorKind

from ast_walker import skip_implicit
from base_rule import BaseRule
from matchers import all_of, any_of, argument_at, callee_of, kind_is, literal_text_excludes, references_static_member
from refactor import replace


PRECONDITIONS = "guava::Preconditions"
FORMAT_OWNER = "absl"
FORMAT_MEMBER = "StrFormat"

# A format string with a %s placeholder really needs formatting.
PLACEHOLDER = re.compile(r"%s")

_PRECONDITIONS_CHECK = any_of(
    callee_of(references_static_member(PRECONDITIONS, "checkNotNull")),
    callee_of(references_static_member(PRECONDITIONS, "checkState")),
    callee_of(references_static_member(PRECONDITIONS, "checkArgument")),
)

_FORMAT_WITHOUT_PLACEHOLDERS = all_of(
    kind_is(CursorKind.CALL_EXPR),
    callee_of(references_static_member(FORMAT_OWNER, FORMAT_MEMBER)),
    argument_at(0, literal_text_excludes(PLACEHOLDER)),
)

MATCHER = all_of(
    kind_is(CursorKind.CALL_EXPR),
    _PRECONDITIONS_CHECK,
    argument_at(1, _FORMAT_WITHOUT_PLACEHOLDERS),
)


class PreconditionsFormatRule(BaseRule):
    """
    Flags Preconditions checks whose message is built eagerly with
    absl::StrFormat although the format string has no placeholder, so a
    plain string literal would do. When the format call has no other
    arguments the call is replaced by the literal itself.
    """

    name = "PreconditionsErrorMessageEagerEvaluation"
    summary = (
        "Second argument to Preconditions.* is a call to absl::StrFormat() "
        "without placeholders, which can be unwrapped"
    )
    kinds = (CursorKind.CALL_EXPR,)

    def matches(self, node, context):
        return MATCHER(node, context)

    def refactor(self, node, context):
        format_call = skip_implicit(node["arguments"][1])
        if len(format_call["arguments"]) != 1:
            return None

        literal = skip_implicit(format_call["arguments"][0])
        if literal.get("kind") != CursorKind.STRING_LITERAL:
            return None

        tokens = [t.spelling for t in literal["cursor"].get_tokens()]
        if not tokens:
            return None
        return replace(format_call, " ".join(tok.replace("%%", "%") for tok in tokens), context.unit)
