"""
Exception types raised by the solver, the catalog and the request pipeline.

Every exception carries a short, user-facing message (Portuguese, like the
rest of the product). The endpoint layer maps each type to an HTTP status.
"""


class SolveAIError(Exception):
    """Base class for all expected failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SolveAIError):
    """Client input is missing or malformed."""

    status_code = 400


class InvalidPayloadError(ValidationError):
    """Inline file data could not be decoded."""


class ConfigurationError(SolveAIError):
    """The Gemini credential is not configured."""


class UpstreamError(SolveAIError):
    """The Gemini call itself failed."""


class UpstreamEmptyError(UpstreamError):
    """Gemini answered without any text."""


class UpstreamMalformedError(UpstreamError):
    """Gemini answered with text that is not the expected JSON object."""


class FolderNotFoundError(SolveAIError):
    status_code = 404

    def __init__(self, folder_id: str):
        super().__init__(f"Pasta não encontrada: {folder_id}")
        self.folder_id = folder_id


class ContextFileNotFoundError(SolveAIError):
    status_code = 404

    def __init__(self, file_id: str):
        super().__init__(f"Arquivo não encontrado: {file_id}")
        self.file_id = file_id
