import difflib


class UsageError(RuntimeError):
    """
    Raised when a refactoring test case is put together incorrectly
    (unpaired input, pairing call without a pending input, bad unit name).
    """


class CompileError(RuntimeError):
    """
    Raised when a unit fails to parse or resolve. Carries the location of the
    first error diagnostic so a broken fixture is never mistaken for a broken
    transform.
    """

    def __init__(self, location, message):
        self.location = location
        self.message = message
        super().__init__(f"{location}: {message}" if location else message)


class MismatchError(AssertionError):
    """
    Raised when the transformed output of a unit differs from its expectation.
    """

    def __init__(self, unit, actual, expected, mode=None):
        self.unit = unit
        self.actual = actual
        self.expected = expected
        self.mode = mode
        super().__init__(self._describe())

    def diff(self):
        return "".join(
            difflib.unified_diff(
                self.expected.splitlines(keepends=True),
                self.actual.splitlines(keepends=True),
                fromfile=f"expected/{self.unit}",
                tofile=f"actual/{self.unit}",
            )
        )

    def _describe(self):
        mode = f" ({self.mode})" if self.mode else ""
        return (
            f"Refactored output of '{self.unit}' does not match expectation{mode}.\n"
            f"{self.diff()}"
            f"--- expected ---\n{self.expected}\n"
            f"--- actual ---\n{self.actual}"
        )


class EditError(ValueError):
    pass


class OverlappingEditsError(EditError):
    """
    Two edits for the same unit cover intersecting spans.
    """

    def __init__(self, unit, first, second):
        self.unit = unit
        self.first = first
        self.second = second
        super().__init__(
            f"Overlapping edits in '{unit}': "
            f"[{first.start}, {first.end}) and [{second.start}, {second.end})."
        )
