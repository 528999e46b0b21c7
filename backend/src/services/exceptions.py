"""Shared exceptions for service layer operations."""


class NotConfiguredError(Exception):
    """
    Raised when a remote write is attempted without workspace credentials.

    Read paths never raise this; they return empty results instead.
    """

    def __init__(self, message: str = "Notion is not configured") -> None:
        super().__init__(message)


class RemoteStoreError(Exception):
    """Raised when a write to the remote workspace API fails."""

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Remote {operation} failed{detail}")


class ArticleNotFoundError(Exception):
    """Raised when an article id is unknown or not owned by the caller."""

    def __init__(self, article_id: str) -> None:
        self.article_id = article_id
        super().__init__(f"Article not found: {article_id}")


class UserAlreadyExistsError(Exception):
    """Raised when registering an email that already has an account."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("User already exists")


class InvalidCredentialsError(Exception):
    """Raised when an email/password pair does not match a credential user."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")
