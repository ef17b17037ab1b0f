import logging

from matchers import ResolutionContext


logger = logging.getLogger(__name__)


class RuleEngine:
    """
    Applies a collection of rules to a flat list of AST nodes and
    collects one description per match.
    """

    def __init__(self, rules):
        self.rules = list(rules)
        self._dispatch = {}
        for rule in self.rules:
            for kind in rule.kinds:
                self._dispatch.setdefault(kind, []).append(rule)

    def run(self, nodes, context):
        descriptions = []

        for node in nodes:
            for rule in self._dispatch.get(node.get("kind"), ()):
                if rule.matches(node, context):
                    descriptions.append(rule.describe(node, context))

        logger.debug("%s: %d match(es) over %d node(s)", context.unit, len(descriptions), len(nodes))
        return descriptions

    def run_unit(self, parsed_unit):
        return self.run(parsed_unit.nodes, ResolutionContext.for_unit(parsed_unit.name))


def edits_of(descriptions):
    return [d.edit for d in descriptions if d.edit is not None]
