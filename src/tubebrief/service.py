"""Core business logic for tubebrief: the summary-generation pipeline."""

import logging
from concurrent.futures import ThreadPoolExecutor

from tubebrief.ingestion.screenshots import ScreenshotAnnotator
from tubebrief.ingestion.youtube import (
    MetadataFetcher,
    TranscriptAcquirer,
    TranscriptUnavailableError,
    resolve,
    validate_video_id,
)
from tubebrief.llm import LLMClient
from tubebrief.models import (
    PromptStyle,
    Screenshot,
    Summary,
    SummaryDraft,
    User,
    VideoMetadata,
)
from tubebrief.report import SummaryExporter, export_filename, transcript_filename
from tubebrief.storage.repository import SummaryRepository
from tubebrief.summarizer import Summarizer

logger = logging.getLogger(__name__)


class SummaryNotFoundError(Exception):
    """Raised when a summary does not exist or is not visible to the caller."""


class SummaryAccessDeniedError(Exception):
    """Raised when a user tries to modify a summary they do not own."""


class SummaryService:
    """Core service layer: single orchestration point for all summary operations.

    Both the CLI and the HTTP API are thin wrappers over this class.
    Dependencies are injected via constructor; anything omitted is built
    from defaults around one shared LLMClient.
    """

    def __init__(
        self,
        repository: SummaryRepository,
        summarizer: Summarizer | None = None,
        metadata_fetcher: MetadataFetcher | None = None,
        transcripts: TranscriptAcquirer | None = None,
        annotator: ScreenshotAnnotator | None = None,
        llm_client: LLMClient | None = None,
        exporter: SummaryExporter | None = None,
    ) -> None:
        self._repo = repository
        self._summarizer = summarizer or Summarizer(llm_client or LLMClient())
        self._metadata = metadata_fetcher or MetadataFetcher()
        self._transcripts = transcripts or TranscriptAcquirer()
        self._annotator = annotator or ScreenshotAnnotator(self._summarizer)
        self._exporter = exporter or SummaryExporter()

    def create_summary(self, url: str, user_id: int) -> Summary:
        """Run the full pipeline for a YouTube URL and persist the result.

        Metadata and transcript are fetched concurrently. Metadata
        failures degrade to placeholders; screenshot failures shrink the
        screenshot list, possibly to empty.

        Args:
            url: YouTube video URL in any supported format.
            user_id: Owner of the new summary.

        Returns:
            The persisted Summary with its screenshots.

        Raises:
            ResolutionError: If the URL is not a YouTube video URL.
            TranscriptUnavailableError: If the video has no captions.
            SummarizationError: If the model call or its output is bad.
        """
        ref = resolve(url)
        logger.info("Creating summary for %s (user %s)", ref.video_id, user_id)

        with ThreadPoolExecutor(max_workers=2) as pool:
            metadata_future = pool.submit(self._metadata.fetch, url)
            transcript_future = pool.submit(self._transcripts.fetch, ref.video_id)
            metadata = metadata_future.result()
            transcript = transcript_future.result()

        if transcript is None:
            raise TranscriptUnavailableError(
                f"Could not fetch captions for video {ref.video_id}. "
                "The video may not have captions available."
            )

        outcome = self._summarizer.summarize(transcript, metadata)
        screenshots = self._annotator.extract(ref.video_id, metadata.video_duration)

        draft = SummaryDraft(
            video_id=ref.video_id,
            video_url=ref.video_url,
            video_title=metadata.video_title,
            video_author=metadata.video_author,
            video_duration=metadata.video_duration,
            transcript=transcript,
            key_points=outcome.result.key_points,
            summary=outcome.result.summary,
            structured_outline=outcome.result.structured_outline,
            full_prompt=outcome.prompt,
            prompt_style=outcome.style,
            token_usage=outcome.usage,
        )
        summary = self._repo.create_summary_with_screenshots(user_id, draft, screenshots)
        logger.info(
            "Summary %d created: %s (%d screenshots)",
            summary.id, summary.video_title, len(summary.screenshots),
        )
        return summary

    def get_summary(self, summary_id: int, user: User) -> Summary:
        """Fetch a summary the user may read.

        Raises:
            SummaryNotFoundError: If it does not exist or belongs to someone
                else. The two cases are indistinguishable.
        """
        summary = self._repo.get_summary_with_screenshots(
            summary_id, requesting_user_id=None if user.is_admin else user.id
        )
        if summary is None:
            raise SummaryNotFoundError(f"Summary not found: {summary_id}")
        return summary

    def list_summaries(self, user: User) -> list[Summary]:
        """The user's own summaries, newest first."""
        return self._repo.get_user_summaries_with_screenshots(user.id)

    def list_all_summaries(self) -> list[Summary]:
        """Every summary in the system. Callers must gate this to admins."""
        return self._repo.get_all_summaries_with_screenshots()

    def delete_summary(self, summary_id: int, user: User) -> None:
        """Delete a summary and its screenshots.

        Raises:
            SummaryNotFoundError: If the summary does not exist.
            SummaryAccessDeniedError: If the user does not own it.
        """
        self._get_for_write(summary_id, user)
        self._repo.delete_summary(summary_id)
        logger.info("Summary deleted: %d", summary_id)

    def regenerate(self, summary_id: int, user: User, style: PromptStyle) -> Summary:
        """Re-run the summarizer on the stored transcript with a prompt style.

        Key points, summary text and outline are replaced, not merged.

        Raises:
            SummaryNotFoundError: If the summary does not exist.
            SummaryAccessDeniedError: If the user does not own it.
            TranscriptUnavailableError: If no transcript is stored.
            SummarizationError: If the model call or its output is bad.
        """
        summary = self._get_for_write(summary_id, user)
        if not summary.transcript:
            raise TranscriptUnavailableError(
                "This summary has no stored transcript. Fetch the transcript first."
            )

        metadata = VideoMetadata(
            video_title=summary.video_title,
            video_author=summary.video_author,
            video_duration=summary.video_duration,
        )
        outcome = self._summarizer.regenerate(summary.transcript, metadata, style)
        logger.info("Regenerated summary %d with %s prompt", summary_id, outcome.style.value)
        return self._repo.update_summary_content(
            summary_id, outcome.result, outcome.prompt, outcome.style, outcome.usage
        )

    def refresh_transcript(self, summary_id: int, user: User, force: bool = False) -> Summary:
        """Fetch the transcript again for an existing summary.

        Without force, a summary that already holds a transcript is
        returned unchanged.

        Raises:
            SummaryNotFoundError: If the summary does not exist.
            SummaryAccessDeniedError: If the user does not own it.
            TranscriptUnavailableError: If the video has no captions.
        """
        summary = self._get_for_write(summary_id, user)
        if summary.transcript and not force:
            return summary

        transcript = self._transcripts.fetch(summary.video_id)
        if transcript is None:
            raise TranscriptUnavailableError(
                f"Could not fetch captions for video {summary.video_id}. "
                "The video may not have captions available."
            )
        logger.info("Transcript refreshed for summary %d (%d chars)", summary_id, len(transcript))
        return self._repo.update_transcript(summary_id, transcript)

    def add_screenshot(
        self,
        summary_id: int,
        user: User,
        timestamp: int,
        description: str | None = None,
    ) -> Screenshot:
        """Capture one screenshot at a user-chosen timestamp.

        Raises:
            SummaryNotFoundError: If the summary does not exist.
            SummaryAccessDeniedError: If the user does not own it.
            ScreenshotError: If the image cannot be fetched or annotated.
        """
        summary = self._get_for_write(summary_id, user)
        draft = self._annotator.capture(
            summary.video_id, timestamp, summary.video_duration, description=description or None
        )
        return self._repo.add_screenshot(summary_id, draft)

    def preview_frame(self, video_id: str, timestamp: int) -> str:
        """Base64 annotated preview for a timestamp. Nothing is stored.

        Raises:
            ResolutionError: If the video ID is malformed.
            ScreenshotError: If no image could be fetched.
        """
        return self._annotator.preview(validate_video_id(video_id), timestamp)

    def extract_terms(self, text: str) -> list[str]:
        """Glossary terms for a piece of summary text."""
        return self._summarizer.extract_terms(text)

    def export(self, summary_id: int, user: User, fmt: str = "markdown") -> tuple[str, str]:
        """Render a readable summary for download.

        Returns:
            Tuple of (suggested filename, rendered document).

        Raises:
            SummaryNotFoundError: If the summary is not visible to the user.
            TranscriptUnavailableError: If fmt is "transcript" and none is stored.
            ValueError: If fmt is not "markdown", "html" or "transcript".
        """
        summary = self.get_summary(summary_id, user)
        if fmt == "transcript":
            if not summary.transcript:
                raise TranscriptUnavailableError("This summary has no stored transcript.")
            return transcript_filename(summary.video_id), summary.transcript
        if fmt == "html":
            return export_filename(summary.video_title, "html"), self._exporter.to_html(summary)
        if fmt == "markdown":
            return export_filename(summary.video_title, "md"), self._exporter.to_markdown(summary)
        raise ValueError(f"Unsupported export format: {fmt}")

    def _get_for_write(self, summary_id: int, user: User) -> Summary:
        summary = self._repo.get_summary_with_screenshots(summary_id)
        if summary is None:
            raise SummaryNotFoundError(f"Summary not found: {summary_id}")
        if not user.is_admin and summary.user_id != user.id:
            raise SummaryAccessDeniedError(
                f"You do not have permission to modify summary {summary_id}"
            )
        return summary
