"""
Email data models for the Emails Service.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class SentimentLabel(str, Enum):
    """Sentiment classification labels."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class SortField(str, Enum):
    """Fields the email listings may be ordered by."""
    TIME = "time"
    SCORE = "score"
    SENDER = "sender"


def _new_email_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Email(BaseModel):
    """A classified email record."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=_new_email_id, description="Immutable record identifier")
    sender: str = Field(..., description="Sender email address")
    subject: str = Field(default="", description="Subject line")
    body: str = Field(default="", description="Message body")
    type: SentimentLabel = Field(default=SentimentLabel.NEUTRAL, description="Sentiment label")
    score: int = Field(default=0, description="Sentiment score")
    time: AwareDatetime = Field(default_factory=_utcnow, description="When the email was received, timezone-aware")


@dataclass(frozen=True)
class EmailFilter:
    """Store-side filter. Unset fields match everything."""
    type: Optional[SentimentLabel] = None
    sender: Optional[str] = None
    min_score: Optional[int] = None
    max_score: Optional[int] = None

    def matches(self, email: Email) -> bool:
        if self.type is not None and email.type != SentimentLabel(self.type).value:
            return False
        if self.sender is not None and email.sender != self.sender:
            return False
        if self.min_score is not None and email.score < self.min_score:
            return False
        if self.max_score is not None and email.score > self.max_score:
            return False
        return True

    def describe(self) -> dict:
        """Non-empty filter fields, for logging."""
        return {
            name: (value.value if isinstance(value, Enum) else value)
            for name, value in (
                ("type", self.type),
                ("sender", self.sender),
                ("min_score", self.min_score),
                ("max_score", self.max_score),
            )
            if value is not None
        }


@dataclass(frozen=True)
class SortSpec:
    """Ordering applied to email listings."""
    field: SortField = SortField.TIME
    descending: bool = True


DEFAULT_SORT = SortSpec()
MATCH_ALL = EmailFilter()
