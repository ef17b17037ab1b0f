import os
from collections import namedtuple


class SourceUnit(namedtuple("SourceUnit", ["name", "text"])):
    """
    One named logical source file. Names are relative paths ("foo/Bar.cpp")
    so that units can include each other.
    """

    __slots__ = ()

    @classmethod
    def from_lines(cls, name, *lines):
        return cls(name, "\n".join(lines) + "\n")

    def with_text(self, text):
        return self._replace(text=text)


def normalize_unit_name(name):
    """
    Returns the normalized relative path for a unit name, or None if the
    name is empty, absolute, or escapes the workspace root.
    """
    if not name or os.path.isabs(name):
        return None
    normalized = os.path.normpath(name).replace(os.sep, "/")
    if normalized == "." or normalized.startswith("../") or normalized == "..":
        return None
    return normalized


def write_units(root, units):
    """
    Materializes units below root and returns {unit name: absolute path}.
    """
    paths = {}
    for unit in units:
        path = os.path.join(root, *unit.name.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(unit.text)
        paths[unit.name] = os.path.realpath(path)
    return paths
