from collections import namedtuple


class RefactorEdit(namedtuple("RefactorEdit", ["unit", "start", "end", "replacement"])):
    """
    Replace the characters [start, end) of a unit with replacement.
    """

    __slots__ = ()

    def overlaps(self, other):
        if self.unit != other.unit:
            return False
        if self.start == self.end or other.start == other.end:
            # Insertions only conflict when strictly inside the other span.
            point, span = (self, other) if self.start == self.end else (other, self)
            return span.start < point.start < span.end
        return self.start < other.end and other.start < self.end


class Description(namedtuple("Description", ["rule", "node", "message", "edit"])):
    """
    One match reported by a rule. ``edit`` is None when the rule flags the
    code but has no fix to offer.
    """

    __slots__ = ()

    @property
    def has_fix(self):
        return self.edit is not None

    @property
    def line(self):
        return self.node.get("line") if self.node else None


def replace(node, text, unit):
    return RefactorEdit(unit, node["start"], node["end"], text)


def delete(node, unit):
    return replace(node, "", unit)


def prefix_with(node, text, unit):
    return RefactorEdit(unit, node["start"], node["start"], text)


def postfix_with(node, text, unit):
    return RefactorEdit(unit, node["end"], node["end"], text)
