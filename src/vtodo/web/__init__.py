"""FastAPI integration for vtodo."""

from vtodo.web.app import create_app
from vtodo.web.models import (
    ChecklistItemModel,
    DetailContentRequest,
    MoveRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
)

__all__ = [
    "create_app",
    "ChecklistItemModel",
    "DetailContentRequest",
    "MoveRequest",
    "TaskCreateRequest",
    "TaskUpdateRequest",
]
