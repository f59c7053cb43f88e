"""Domain exceptions shared by services and HTTP routes."""

from __future__ import annotations

from fastapi import status


class PlanningError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(PlanningError):
    """A referenced record (shift, user, villa, template, month) does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidRequestError(PlanningError):
    """Malformed or missing input, rejected before any mutation."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(PlanningError):
    """Business rule violation such as republishing a published month."""

    status_code = status.HTTP_409_CONFLICT
