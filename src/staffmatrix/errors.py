from __future__ import annotations


class GatewayError(RuntimeError):
    """The completion service failed or returned something unusable.

    Covers transport exceptions, empty or non-JSON output and responses that
    do not validate against the expected shape. The whole unit of work
    (one file, one paste, one optimization run) is abandoned.
    """

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message


class MissingPrerequisiteError(ValueError):
    """Rejected locally before any network call was made."""


class CredentialRequiredError(MissingPrerequisiteError):
    pass


class UnsupportedDocumentError(ValueError):
    pass
