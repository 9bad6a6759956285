"""Abstract repository interfaces for summaries and users."""

from abc import ABC, abstractmethod
from datetime import datetime

from tubebrief.models import (
    AISummaryResult,
    PromptStyle,
    Screenshot,
    ScreenshotDraft,
    Summary,
    SummaryDraft,
    TokenUsage,
    User,
)


class SummaryRepository(ABC):
    """Storage contract for summaries and the screenshots they own.

    Every multi-row write is atomic: a failure part-way leaves no
    summary without its screenshots and no orphaned screenshots.
    """

    @abstractmethod
    def create_summary_with_screenshots(
        self, user_id: int, draft: SummaryDraft, screenshots: list[ScreenshotDraft]
    ) -> Summary:
        """Insert a summary and its screenshots in one transaction."""

    @abstractmethod
    def get_summary_with_screenshots(
        self, summary_id: int, requesting_user_id: int | None = None
    ) -> Summary | None:
        """Fetch a summary with screenshots.

        When requesting_user_id is given and does not own the summary,
        returns None exactly as if the summary did not exist.
        """

    @abstractmethod
    def get_user_summaries_with_screenshots(self, user_id: int) -> list[Summary]:
        """All summaries owned by a user, newest first."""

    @abstractmethod
    def get_all_summaries_with_screenshots(self) -> list[Summary]:
        """Every user's summaries, newest first. Admin use only."""

    @abstractmethod
    def update_summary_content(
        self,
        summary_id: int,
        result: AISummaryResult,
        full_prompt: str,
        style: PromptStyle,
        usage: TokenUsage | None = None,
    ) -> Summary | None:
        """Replace key points, summary text and outline wholesale."""

    @abstractmethod
    def update_transcript(self, summary_id: int, transcript: str) -> Summary | None:
        """Store a (re)fetched transcript on an existing summary."""

    @abstractmethod
    def add_screenshot(self, summary_id: int, draft: ScreenshotDraft) -> Screenshot:
        """Attach one more screenshot to an existing summary."""

    @abstractmethod
    def get_screenshots(self, summary_id: int) -> list[Screenshot]:
        """Screenshots of a summary ordered by timestamp."""

    @abstractmethod
    def delete_summary(self, summary_id: int) -> bool:
        """Delete a summary and its screenshots. False if it did not exist."""


class UserRepository(ABC):
    """Storage contract for user accounts."""

    @abstractmethod
    def create(
        self,
        username: str,
        password_hash: str,
        *,
        is_admin: bool = False,
        invitation_token: str | None = None,
        token_expiry: datetime | None = None,
        is_password_change_required: bool = False,
    ) -> User:
        """Insert a user. Raises ValueError if the username is taken."""

    @abstractmethod
    def get(self, user_id: int) -> User | None:
        """Retrieve a user by ID."""

    @abstractmethod
    def get_by_username(self, username: str) -> User | None:
        """Retrieve a user by unique username."""

    @abstractmethod
    def get_by_invitation_token(self, token: str) -> User | None:
        """Retrieve the user holding an outstanding invitation token."""

    @abstractmethod
    def list_all(self) -> list[User]:
        """All users ordered by ID."""

    @abstractmethod
    def count(self) -> int:
        """Number of users."""

    @abstractmethod
    def update(self, user: User) -> User:
        """Persist every mutable field of a user."""

    @abstractmethod
    def delete(self, user_id: int) -> bool:
        """Delete a user and everything they own. False if absent."""
