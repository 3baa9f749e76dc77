from pydantic import BaseModel, Field
from typing import List


class MarkReadRequest(BaseModel):
    """Mark the given notifications, or all of them, as read"""
    notification_ids: List[int] = Field(default_factory=list)
    mark_all: bool = False
