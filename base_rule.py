from refactor import Description


class BaseRule:
    """
    A rule declares the node kinds it wants to see, a predicate over those
    nodes, and optionally a fix for a matched node.
    """

    name = None
    summary = ""
    kinds = ()

    def matches(self, node, context):
        raise NotImplementedError("matches() must be implemented")

    def refactor(self, node, context):
        """
        Returns the edit fixing a matched node, or None when there is no fix.
        """
        return None

    def describe(self, node, context):
        return Description(
            self.name or type(self).__name__,
            node,
            self.summary,
            self.refactor(node, context),
        )
