class SemanticError(Exception):
    """Base class for errors raised while checking a merge request."""


class FormatError(SemanticError, ValueError):
    """The message does not follow `<type>[(scope)]: <subject>`."""


class ValidationError(SemanticError, ValueError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class AuthError(SemanticError):
    """Webhook token missing or not matching the configured secret."""


class CollaboratorError(SemanticError):
    """A call to the GitLab API failed."""
