"""Notification log records."""

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, Field


class Severity(str, Enum):
    """Notification severity levels."""

    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class Notification(BaseModel):
    """A behavioural nudge. The engine only ever appends these to the log."""

    id: str
    title: str
    message: str
    # Stored logs may use the camelCase keys of the web client
    severity: Severity = Field(
        default=Severity.INFO, validation_alias=AliasChoices("severity", "type")
    )
    read: bool = False
    created_at: datetime = Field(validation_alias=AliasChoices("created_at", "createdAt"))

    model_config = {"frozen": True}
