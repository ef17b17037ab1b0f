import logging

from errors import EditError, OverlappingEditsError


logger = logging.getLogger(__name__)


def group_edits(edits):
    grouped = {}
    for edit in edits:
        grouped.setdefault(edit.unit, []).append(edit)
    return grouped


def _ordered(unit, text, edits):
    # Stable sort: insertions at the same offset keep their emission order.
    ordered = sorted(edits, key=lambda e: (e.start, e.end))
    previous = None
    for edit in ordered:
        if edit.start < 0 or edit.end > len(text) or edit.start > edit.end:
            raise EditError(
                f"Edit [{edit.start}, {edit.end}) is outside '{unit}' (length {len(text)})."
            )
        if previous is not None and (previous.overlaps(edit) or edit.start < previous.end):
            raise OverlappingEditsError(unit, previous, edit)
        previous = edit
    return ordered


def apply_to_text(unit, text, edits):
    """
    Applies edits to one text. Every offset refers to the original text.
    """
    ordered = _ordered(unit, text, edits)
    pieces = []
    cursor = 0
    for edit in ordered:
        pieces.append(text[cursor:edit.start])
        pieces.append(edit.replacement)
        cursor = edit.end
    pieces.append(text[cursor:])
    return "".join(pieces)


def apply_edits(units, edits):
    """
    Returns a new list of units with edits applied. Units without edits are
    returned unchanged, and the input order is preserved.
    """
    units = list(units)
    grouped = group_edits(edits)

    known = {unit.name for unit in units}
    unknown = sorted(name for name in grouped if name not in known)
    if unknown:
        raise EditError("Edits target unknown unit(s): " + ", ".join(unknown) + ".")

    out = []
    for unit in units:
        unit_edits = grouped.get(unit.name)
        if not unit_edits:
            out.append(unit)
            continue
        logger.debug("Applying %d edit(s) to %s", len(unit_edits), unit.name)
        out.append(unit.with_text(apply_to_text(unit.name, unit.text, unit_edits)))
    return out
