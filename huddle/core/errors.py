"""Domain errors surfaced to HTTP and websocket clients."""

from __future__ import annotations

from fastapi import HTTPException, status


class ChatError(HTTPException):
    """Base class for recoverable domain errors.

    Every subclass carries an HTTP status and a stable ``code`` so that REST
    handlers and the websocket loop can report the same condition the same way.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)

    def to_payload(self) -> dict[str, str]:
        return {"detail": str(self.detail), "code": self.code}


class NotMember(ChatError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "not_member"
    default_detail = "Not a channel member"


class Forbidden(ChatError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Operation not permitted"


class NotFound(ChatError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class ChannelNotFound(NotFound):
    default_detail = "Channel not found"


class MessageNotFound(NotFound):
    default_detail = "Message not found"


class ParentNotFound(NotFound):
    default_detail = "Parent message not found"


class UserNotFound(NotFound):
    default_detail = "User not found"


class FileNotFound(NotFound):
    default_detail = "File not found"


class AlreadyExists(ChatError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_exists"
    default_detail = "Already exists"


class InvalidInput(ChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"
    default_detail = "Invalid input"


class PayloadTooLarge(InvalidInput):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_detail = "Payload too large"


class NestedThread(ChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "nested_thread"
    default_detail = "Cannot reply to a reply"


__all__ = [
    "AlreadyExists",
    "ChannelNotFound",
    "ChatError",
    "FileNotFound",
    "Forbidden",
    "InvalidInput",
    "MessageNotFound",
    "NestedThread",
    "NotFound",
    "NotMember",
    "ParentNotFound",
    "PayloadTooLarge",
    "UserNotFound",
]
