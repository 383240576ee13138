"""
PromptShelf Exceptions

Error taxonomy shared by the core, the integrations and the CLI.
"""


class PromptShelfError(Exception):
    """Base exception for all PromptShelf errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ExecutionError(PromptShelfError):
    """Raised when running a prompt against the model fails."""
    pass


class InvalidCredentialError(ExecutionError):
    """Raised when the model service rejects (or lacks) the API key."""

    def __init__(self, message: str = "The API key is missing or was rejected by the model service."):
        super().__init__(message)


class EvaluationError(PromptShelfError):
    """Raised when evaluating a test output fails."""
    pass


class CategorizationError(PromptShelfError):
    """Raised when theme/tag suggestion fails."""
    pass


class SearchError(PromptShelfError):
    """Raised when semantic search ranking fails."""
    pass


class EnhancementError(PromptShelfError):
    """Raised when prompt enhancement suggestions cannot be produced."""
    pass


class NotFoundError(PromptShelfError):
    """Raised when a referenced record does not exist."""
    pass


class PromptNotFoundError(NotFoundError):
    """Raised when a prompt id is not in the collection."""

    def __init__(self, prompt_id: str):
        super().__init__(f"Prompt not found: {prompt_id}")
        self.prompt_id = prompt_id


class InvalidVersionError(PromptShelfError):
    """Raised when a version number does not exist on a prompt."""

    def __init__(self, prompt_id: str, version: int):
        super().__init__(f"Version {version} does not exist on prompt {prompt_id}")
        self.prompt_id = prompt_id
        self.version = version


class ValidationError(PromptShelfError):
    """Raised for missing required fields, invalid CSV input or malformed records."""
    pass


class StorageError(PromptShelfError):
    """Raised when the collection file cannot be read or written."""
    pass
