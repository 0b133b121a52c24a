"""Diagnostics reported while generating mocks."""


class GenerationError(Exception):
    """A generation request that cannot be expanded.

    Reported at build time for the offending declaration or expression; no
    output is produced for it.
    """

    diagnostic_id = "generation-error"
    severity = "error"

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        col_offset: int | None = None,
        filename: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.lineno = lineno
        self.col_offset = col_offset
        self.filename = filename

    def format(self) -> str:
        """Render as ``file:line:col: severity: message``."""
        location = self.filename or "<unknown>"
        if self.lineno is not None:
            location += f":{self.lineno}"
            if self.col_offset is not None:
                location += f":{self.col_offset + 1}"
        return f"{location}: {self.severity}: {self.message} [{self.diagnostic_id}]"


class NotAnInterface(GenerationError):
    """@mockable was applied to something other than a protocol."""

    diagnostic_id = "not-an-interface"

    def __init__(self, name: str, lineno: int | None = None, col_offset: int | None = None):
        super().__init__(
            f"@mockable must be applied to a protocol (got {name})", lineno, col_offset
        )
        self.name = name


class NoTypeSpecified(GenerationError):
    """mock() was called without a protocol to mock."""

    diagnostic_id = "no-type-specified"

    def __init__(self, lineno: int | None = None, col_offset: int | None = None):
        super().__init__("mock() requires a protocol to mock", lineno, col_offset)


class SignatureCollision(GenerationError):
    """Two methods of one interface derive the same signature."""

    diagnostic_id = "signature-collision"

    def __init__(self, signature: str, lineno: int | None = None):
        super().__init__(
            f"Duplicate mock signature {signature!r}: overloads must differ by "
            f"parameter or return types",
            lineno,
        )
        self.signature = signature


class UnsupportedMember(GenerationError):
    """A member kind that cannot be given a tracking stub."""

    diagnostic_id = "unsupported-member"

    def __init__(self, member: str, reason: str, lineno: int | None = None):
        super().__init__(f"Cannot mock {member}: {reason}", lineno)
        self.member = member


class SourceUnavailable(GenerationError):
    """The source of a decorated class could not be read."""

    diagnostic_id = "source-unavailable"
