from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class SendMessageCommand(BaseModel):
    channel: Optional[Any] = None
    text: Optional[Any] = None


class ScheduleMessageCommand(BaseModel):
    channel: Optional[Any] = None
    text: Optional[Any] = None
    post_at: Optional[Any] = Field(None, description="Unix timestamp in seconds")


class HistoryQuery(BaseModel):
    channel: Optional[Any] = None
    limit: Any = 50


class UpdateMessageCommand(BaseModel):
    channel: Optional[Any] = None
    ts: Optional[Any] = Field(None, description="Timestamp of the message to edit")
    text: Optional[Any] = None


class DeleteMessageCommand(BaseModel):
    channel: Optional[Any] = None
    ts: Optional[Any] = None
