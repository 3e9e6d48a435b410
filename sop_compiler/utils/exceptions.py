class SOPCompilerError(Exception):
    pass


class CompilationError(SOPCompilerError):
    """Raised when a document or graph cannot be converted.

    ``errors`` holds the validation issues when the cause is an invalid document.
    """

    def __init__(self, message: str, errors: list | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class MarkupParseError(SOPCompilerError):
    pass
