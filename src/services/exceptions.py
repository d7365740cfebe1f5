"""Shared exceptions for service layer operations."""


class NotFoundError(Exception):
    """
    Raised when a referenced row does not exist.

    Handlers map every subclass to a 404 with an empty body.
    """


class ContentNotFoundError(NotFoundError):
    """Raised when a content item is not found."""

    def __init__(self, content_id: int) -> None:
        self.content_id = content_id
        super().__init__(f"Content {content_id} not found")


class HistoryVersionNotFoundError(NotFoundError):
    """Raised when a content item has no history record with the requested version."""

    def __init__(self, content_id: int, version: int) -> None:
        self.content_id = content_id
        self.version = version
        super().__init__(f"Version {version} of content {content_id} not found")
