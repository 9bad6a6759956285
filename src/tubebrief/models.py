"""Domain models for tubebrief."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(seconds: float) -> str:
    """Format seconds as MM:SS."""
    mins, secs = divmod(int(seconds), 60)
    return f"{mins:02d}:{secs:02d}"


_USAGE_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PromptStyle(str, Enum):
    """Named system-prompt variants used for (re)generation."""

    STANDARD = "standard"
    DETAILED = "detailed"
    CONCISE = "concise"
    BUSINESS = "business"
    ACADEMIC = "academic"
    TECHNICAL_AI = "technical_ai"


class VideoReference(CamelModel):
    """A resolved YouTube video: canonical ID plus the URL it came from."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    video_id: str
    video_url: str

    @computed_field
    @property
    def watch_url(self) -> str:
        """Canonical watch URL derived from video_id."""
        return f"https://www.youtube.com/watch?v={self.video_id}"


class VideoMetadata(CamelModel):
    """Cosmetic video metadata. Fetched best-effort."""

    video_title: str
    video_author: str
    video_duration: int = 0  # seconds

    @classmethod
    def placeholder(cls) -> "VideoMetadata":
        """Record used when the metadata provider fails."""
        return cls(video_title="Unknown Title", video_author="Unknown Author", video_duration=0)


class OutlineSection(CamelModel):
    """One section of the hierarchical outline."""

    title: str
    items: list[str] = Field(default_factory=list)


class AISummaryResult(CamelModel):
    """Validated structured output of the summarization model."""

    key_points: list[str]
    summary: str
    structured_outline: list[OutlineSection]


class TokenUsage(CamelModel):
    """Token accounting for one model completion."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    prompt_cost: float | None = None
    completion_cost: float | None = None
    total_cost: float | None = None
    transcript_length: int | None = None
    truncated_length: int | None = None
    was_truncated: bool | None = None
    model: str | None = None
    prompt_type: str | None = None

    @classmethod
    def from_response_usage(cls, usage: Any, **extra: Any) -> "TokenUsage":
        """Build from a provider usage payload (object or mapping).

        Raises:
            ValueError: If any of the token counters is missing.
        """
        if usage is None:
            raise ValueError("Completion carried no usage payload")
        values = {}
        for name in _USAGE_FIELDS:
            value = usage.get(name) if isinstance(usage, dict) else getattr(usage, name, None)
            if value is None:
                raise ValueError(f"Usage payload missing field: {name}")
            values[name] = int(value)
        return cls(**values, **extra)


class ScreenshotDraft(CamelModel):
    """An annotated screenshot not yet attached to a summary."""

    image_url: str  # base64-encoded JPEG
    timestamp: int  # seconds
    description: str = ""


class Screenshot(ScreenshotDraft):
    """A persisted screenshot owned by exactly one summary."""

    id: int
    summary_id: int
    created_at: datetime = Field(default_factory=_utcnow)


class SummaryDraft(CamelModel):
    """Everything the pipeline produces for a new summary."""

    video_id: str
    video_url: str
    video_title: str
    video_author: str
    video_duration: int = 0
    transcript: str | None = None
    key_points: list[str] = Field(default_factory=list)
    summary: str = ""
    structured_outline: list[OutlineSection] = Field(default_factory=list)
    full_prompt: str = ""
    prompt_style: PromptStyle = PromptStyle.STANDARD
    token_usage: TokenUsage | None = None


class Summary(SummaryDraft):
    """A persisted summary together with its screenshots."""

    id: int
    user_id: int
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    screenshots: list[Screenshot] = Field(default_factory=list)


class User(CamelModel):
    """An account. The password hash never leaves the process."""

    id: int
    username: str
    password_hash: str = Field(default="", exclude=True)
    is_admin: bool = False
    invitation_token: str | None = Field(default=None, exclude=True)
    token_expiry: datetime | None = None
    is_password_change_required: bool = False
