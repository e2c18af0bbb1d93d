"""Request models for the task API."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ChecklistItemModel(BaseModel):
    text: str = Field(..., description="Item text")
    checked: bool = Field(False, description="Whether the item is done")


class TaskCreateRequest(BaseModel):
    """
    Fields for a new task. Everything is optional; the server fills defaults
    (title falls back to "Untitled Task").
    """

    title: Optional[str] = Field(None, description="Task title")
    status: Optional[str] = Field(None, description="pending | in-progress | completed")
    description: Optional[str] = None
    expected: Optional[str] = Field(None, description="Expected time, e.g. 2h or 1d")
    tags: Optional[List[str]] = None
    checklist: Optional[List[ChecklistItemModel]] = None


class TaskUpdateRequest(BaseModel):
    """Partial update: only the fields present in the body are changed."""

    title: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None
    expected: Optional[str] = None
    tags: Optional[List[str]] = None
    checklist: Optional[List[ChecklistItemModel]] = None


class MoveRequest(BaseModel):
    status: str = Field(..., description="Target status")


class DetailContentRequest(BaseModel):
    content: Optional[str] = Field(None, description="Markdown for the task's detail file")
