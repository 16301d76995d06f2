"""
Models for change detection and broadcast functionality.

This module defines Pydantic models for:
- Fetch results produced by schedule fetchers
- The last-known schedule snapshot
- Broadcast and poll cycle results
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class CycleTrigger(str, Enum):
    """What started a poll cycle."""
    TIMER = "timer"
    MANUAL = "manual"
    START = "start"
    BUTTON = "button"
    TEXT = "text"


class ChangeOutcome(str, Enum):
    """Decision of the change detector for one fetch result."""
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class DeliveryStatus(str, Enum):
    """Outcome of delivering a notification to one subscriber."""
    DELIVERED = "delivered"
    UNREACHABLE = "unreachable"
    TRANSIENT = "transient"


class FetchResult(BaseModel):
    """Either a schedule reference or a human-readable failure cause."""
    reference: Optional[str] = Field(default=None, description="Resolved schedule image URL")
    error: Optional[str] = Field(default=None, description="Failure cause")
    fetched_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def require_reference_or_error(self) -> "FetchResult":
        if self.error is None and not self.reference:
            self.error = "empty schedule reference"
        return self

    @classmethod
    def success(cls, reference: str) -> "FetchResult":
        return cls(reference=reference)

    @classmethod
    def failure(cls, cause: str) -> "FetchResult":
        return cls(error=cause or "unknown error")

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.reference)


class ScheduleSnapshot(BaseModel):
    """Last-known schedule reference as persisted between restarts."""
    reference: str = Field(..., description="Schedule image URL")
    updated_at: str = Field(..., description="Human timestamp of the last change")


class BroadcastResult(BaseModel):
    """Result of delivering one notification to every subscriber."""
    total: int = Field(default=0)
    delivered: int = Field(default=0)
    failed: int = Field(default=0)
    removed: List[int] = Field(default_factory=list)


class CycleResult(BaseModel):
    """Result of one fetch-detect-broadcast cycle."""
    cycle_id: str = Field(..., description="Unique cycle identifier")
    trigger: CycleTrigger = Field(default=CycleTrigger.TIMER)
    outcome: ChangeOutcome
    reference: Optional[str] = Field(default=None)
    error: Optional[str] = Field(default=None)
    broadcast: Optional[BroadcastResult] = Field(default=None)
    requester_status: Optional[DeliveryStatus] = Field(default=None)
    error_notified: bool = Field(default=False)
    started_at: datetime = Field(default_factory=datetime.now)
    duration_seconds: float = Field(default=0.0)

    @property
    def success(self) -> bool:
        return self.outcome != ChangeOutcome.FAILED
