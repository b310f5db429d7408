class ClassificationError(Exception):
    """Raised when classification or form extraction fails."""


class ClassificationNotConfiguredError(ClassificationError):
    """Raised when an unconfigured classifier is invoked."""


class ClassificationParseError(ClassificationError):
    """Raised when the provider response is not a parseable JSON object."""


class ClassificationValidationError(ClassificationError):
    """Raised when the parsed response cannot be turned into a result."""


class ClassificationNetworkError(ClassificationError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
