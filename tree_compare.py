import bisect
import re


_ANONYMOUS_RE = re.compile(r"^\((anonymous|unnamed) ([a-z ]+?)(?: at .*)?\)$")


def _normalized_name(name):
    # Anonymous records are spelled with their file path and line.
    m = _ANONYMOUS_RE.match(name or "")
    if m:
        return f"({m.group(1)} {m.group(2)})"
    return name or ""


class _TokenIndex:
    def __init__(self, tokens):
        self.tokens = tokens
        self.starts = [t[0] for t in tokens]

    def own_tokens(self, node):
        child_spans = [(c["start"], c["end"]) for c in node.get("children", [])]
        lo = bisect.bisect_left(self.starts, node["start"])
        hi = bisect.bisect_left(self.starts, node["end"])
        out = []
        for start, _end, spelling in self.tokens[lo:hi]:
            if any(cs <= start < ce for cs, ce in child_spans):
                continue
            out.append(spelling)
        return tuple(out)


def _signature(node, index, is_root=False):
    return (
        node["kind"].name,
        "" if is_root else _normalized_name(node.get("name")),
        index.own_tokens(node),
        tuple(_signature(child, index) for child in node.get("children", [])),
    )


def signature(parsed_unit):
    """
    Layout-independent structure of a parsed unit: for every node its kind,
    name and the tokens it owns directly, nested like the tree. Whitespace,
    line breaks and comments do not contribute.
    """
    if not parsed_unit.nodes:
        return None
    index = _TokenIndex(parsed_unit.tokens)
    return _signature(parsed_unit.nodes[0], index, is_root=True)