"""Request and response bodies for the HTTP API."""

from pydantic import AliasChoices, Field, field_validator

from tubebrief.models import CamelModel, PromptStyle

MAX_TIMESTAMP = 86400


class Credentials(CamelModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)


class CreateSummaryRequest(CamelModel):
    url: str = Field(min_length=1, validation_alias=AliasChoices("url", "youtubeUrl"))


class RegenerateRequest(CamelModel):
    prompt_type: PromptStyle = PromptStyle.STANDARD

    @field_validator("prompt_type", mode="before")
    @classmethod
    def _normalize(cls, value):
        # accept "technical-ai" and "Technical_AI" alongside the canonical form
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_")
        return value


class ScreenshotRequest(CamelModel):
    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP)
    description: str | None = Field(default=None, max_length=200)


class PreviewFrameRequest(CamelModel):
    video_id: str = Field(min_length=1, max_length=64)
    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP)


class PreviewFrameResponse(CamelModel):
    image_data: str


class ExtractTermsRequest(CamelModel):
    summary_content: str


class ExtractTermsResponse(CamelModel):
    terms: list[str]


class CreateUserRequest(Credentials):
    is_admin: bool = False


class InvitationRequest(CamelModel):
    username: str = Field(min_length=1, max_length=100)
    is_admin: bool = False


class InvitationResponse(CamelModel):
    username: str
    token: str
    invitation_url: str
    expires_at: str


class InvitationInfo(CamelModel):
    username: str
    is_admin: bool
    expires_at: str


class AcceptInvitationRequest(CamelModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=6)


class Message(CamelModel):
    message: str
