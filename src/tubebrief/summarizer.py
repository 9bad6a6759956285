"""AI summarization: structured summaries, screenshot captions, glossary terms."""

import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError

from tubebrief import prompts
from tubebrief.config import settings
from tubebrief.llm import LLMClient, LLMError, parse_json_object
from tubebrief.models import (
    AISummaryResult,
    PromptStyle,
    TokenUsage,
    VideoMetadata,
    format_timestamp,
)

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "... [transcript truncated due to length]"
MAX_TERMS = 10
MAX_DESCRIPTION_WORDS = 8

_CAPITALIZED_PHRASE = re.compile(r"\b[A-Z][a-zA-Z0-9]+(?:[ -][A-Z][a-zA-Z0-9]+)*\b")


class SummarizationError(Exception):
    """Raised when the model cannot produce a summary."""


class MalformedModelOutputError(SummarizationError):
    """Raised when the model's JSON does not match the summary contract."""


@dataclass
class SummaryOutcome:
    """A validated summary together with the prompt and usage that produced it."""

    result: AISummaryResult
    prompt: str
    style: PromptStyle
    usage: TokenUsage | None = None


def truncate_transcript(text: str, limit: int | None = None) -> tuple[str, bool]:
    """Cut a transcript to at most `limit` characters plus a marker.

    Returns:
        The text to submit and whether it was truncated.
    """
    limit = limit or settings.transcript_char_limit
    if len(text) <= limit:
        return text, False
    return text[:limit] + TRUNCATION_MARKER, True


def extract_terms_locally(text: str, limit: int = MAX_TERMS) -> list[str]:
    """Capitalised multi-word phrases, deduplicated in order of appearance."""
    terms: list[str] = []
    for match in _CAPITALIZED_PHRASE.finditer(text or ""):
        term = match.group(0)
        if term not in terms:
            terms.append(term)
        if len(terms) == limit:
            break
    return terms


class Summarizer:
    """Turns transcripts into validated AISummaryResult objects.

    Also provides the two auxiliary capabilities of the pipeline:
    one-line screenshot descriptions and glossary term extraction.
    Both degrade to local fallbacks instead of raising.
    """

    def __init__(
        self,
        llm: LLMClient,
        char_limit: int | None = None,
        temperature: float | None = None,
    ) -> None:
        self._llm = llm
        self._char_limit = char_limit or settings.transcript_char_limit
        self._temperature = settings.summary_temperature if temperature is None else temperature

    def summarize(self, transcript: str | None, metadata: VideoMetadata) -> SummaryOutcome:
        """Generate a standard summary.

        Raises:
            SummarizationError: If the transcript is empty or the model call fails.
            MalformedModelOutputError: If the model's JSON is missing fields.
        """
        return self.regenerate(transcript, metadata, PromptStyle.STANDARD)

    def regenerate(
        self,
        transcript: str | None,
        metadata: VideoMetadata,
        style: PromptStyle,
    ) -> SummaryOutcome:
        """Generate a summary using a named prompt style.

        Same contract as summarize(); the returned outcome carries the
        exact prompt text sent to the model.
        """
        if not transcript or not transcript.strip():
            raise SummarizationError("Cannot summarize an empty transcript")

        style = PromptStyle(style)
        text, was_truncated = truncate_transcript(transcript, self._char_limit)
        system = prompts.system_prompt(style)
        user = (
            f'Here\'s the transcript of a YouTube video titled "{metadata.video_title}" '
            f"by {metadata.video_author}:\n\n{text}"
        )

        logger.info("Summarizing %d chars (%s prompt)", len(text), style.value)
        try:
            completion = self._llm.complete(
                [
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                json_mode=True,
                temperature=self._temperature,
            )
            data = parse_json_object(completion.text)
        except LLMError as e:
            raise SummarizationError(f"Failed to generate summary: {e}") from e

        result = self.validate(data)
        usage = completion.usage
        if usage is not None:
            usage.transcript_length = len(transcript)
            usage.truncated_length = len(text)
            usage.was_truncated = was_truncated
            usage.prompt_type = style.value

        return SummaryOutcome(
            result=result,
            prompt=f"{system}\n\n{user}",
            style=style,
            usage=usage,
        )

    @staticmethod
    def validate(data) -> AISummaryResult:
        """Check a parsed model response against the summary contract.

        Raises:
            MalformedModelOutputError: If a field is missing or mistyped.
        """
        if not isinstance(data, dict):
            raise MalformedModelOutputError(
                f"Expected a JSON object, got {type(data).__name__}"
            )
        try:
            return AISummaryResult.model_validate(data)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise MalformedModelOutputError(f"Model output failed validation: {fields}") from e

    def describe_screenshot(self, image_b64: str, timestamp: float) -> str:
        """One-line (max 8 words) description of a screenshot. Never raises."""
        fallback = f"Screenshot at {format_timestamp(timestamp)}"
        try:
            completion = self._llm.complete(
                [
                    {"role": "system", "content": prompts.SCREENSHOT_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": "Describe this video screenshot concisely:"},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"},
                            },
                        ],
                    },
                ],
                model=self._llm.vision_model,
                max_tokens=50,
            )
        except LLMError as e:
            logger.warning("Screenshot description failed at %ss: %s", timestamp, e)
            return fallback

        words = completion.text.strip().strip("\"'").split()
        return " ".join(words[:MAX_DESCRIPTION_WORDS]).rstrip(".") or fallback

    def extract_terms(self, text: str) -> list[str]:
        """Up to ten salient terms from summary text.

        Falls back to extract_terms_locally() on any model failure; callers
        cannot tell which source produced the terms.
        """
        if not text or not text.strip():
            return []
        try:
            completion = self._llm.complete(
                [
                    {"role": "system", "content": prompts.TERMS_PROMPT},
                    {"role": "user", "content": f"Extract key technical terms from this content:\n\n{text}"},
                ],
                json_mode=True,
                temperature=settings.terms_temperature,
            )
            terms = self._terms_from(parse_json_object(completion.text))
        except LLMError as e:
            logger.warning("Term extraction failed, using regex fallback: %s", e)
            return extract_terms_locally(text)

        if not terms:
            logger.info("Model returned no terms, using regex fallback")
            return extract_terms_locally(text)
        return terms

    @staticmethod
    def _terms_from(data) -> list[str]:
        """Pick the terms array: `terms` if present, else the first list value."""
        candidates = data if isinstance(data, list) else None
        if isinstance(data, dict):
            if isinstance(data.get("terms"), list):
                candidates = data["terms"]
            else:
                candidates = next((v for v in data.values() if isinstance(v, list)), None)

        terms: list[str] = []
        for term in candidates or []:
            if isinstance(term, str) and term.strip() and term.strip() not in terms:
                terms.append(term.strip())
        return terms[:MAX_TERMS]
