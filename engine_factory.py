from rule_engine import RuleEngine

from preconditions_format_rule import PreconditionsFormatRule


RULES = {
    PreconditionsFormatRule.name: PreconditionsFormatRule,
}

ALL_RULE_NAMES = set(RULES)


def _normalized_names(enabled_rules):
    if not enabled_rules:
        return set(ALL_RULE_NAMES)
    return {name for name in enabled_rules if name in ALL_RULE_NAMES}


def build_engine(enabled_rules=None):
    names = _normalized_names(enabled_rules)
    return RuleEngine([RULES[name]() for name in sorted(names)])
