class OracleError(Exception):
    """The scoring oracle could not produce a usable result."""
    kind = "oracle"


class OracleTransportError(OracleError):
    kind = "transport"


class OracleTimeoutError(OracleError):
    kind = "timeout"


class OracleValidationError(OracleError):
    """Response did not parse or did not match the declared shape."""
    kind = "validation"


class StageFailure(Exception):
    """A pipeline stage failed; wraps the oracle error that caused it."""

    def __init__(self, stage: str, cause: OracleError):
        super().__init__(f"Stage '{stage}' failed ({cause.kind}): {cause}")
        self.stage = stage
        self.cause = cause

    @property
    def kind(self) -> str:
        return self.cause.kind
