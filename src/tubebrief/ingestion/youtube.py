"""YouTube ingestion: URL resolution, metadata and caption transcripts."""

import json
import logging
import random
import re
from urllib.parse import parse_qs, quote, urlparse
from urllib.request import urlopen

import yt_dlp
from youtube_transcript_api import YouTubeTranscriptApi

from tubebrief.config import settings
from tubebrief.models import VideoMetadata, VideoReference

logger = logging.getLogger(__name__)


class ResolutionError(Exception):
    """Raised when a URL cannot be resolved to a YouTube video ID."""


class TranscriptUnavailableError(Exception):
    """Raised when no captions could be found for a video."""


_ID_PATTERN = re.compile(r"^[\w-]+$")
_ID_SUFFIX = re.compile(r"[/?#&]")
_PATH_PREFIXES = ("/embed/", "/v/", "/shorts/", "/live/")


def parse_video_id(url: str) -> str:
    """Extract the bare video ID from a YouTube URL.

    Supports youtube.com/watch?v=, /embed/, /v/, /shorts/, /live/ and
    youtu.be short links. Trailing path segments, query strings and
    fragments are stripped from the captured ID.

    Raises:
        ResolutionError: If the host is not YouTube or no ID is found.
    """
    raw = (url or "").strip()
    if not raw:
        raise ResolutionError("Empty URL")
    if "://" not in raw:
        raw = f"https://{raw}"

    parsed = urlparse(raw)
    host = (parsed.hostname or "").lower()
    candidate = None

    if host == "youtu.be" or host.endswith(".youtu.be"):
        candidate = parsed.path.lstrip("/")
    elif host == "youtube.com" or host.endswith(".youtube.com"):
        candidate = parse_qs(parsed.query).get("v", [None])[0]
        if not candidate:
            for prefix in _PATH_PREFIXES:
                if prefix in parsed.path:
                    candidate = parsed.path.split(prefix, 1)[1]
                    break
    else:
        raise ResolutionError(f"Not a YouTube URL: {url}")

    if candidate:
        candidate = _ID_SUFFIX.split(candidate, 1)[0]
    if not candidate or not _ID_PATTERN.match(candidate):
        raise ResolutionError(f"Could not extract video ID from URL: {url}")
    return candidate


def validate_video_id(video_id: str) -> str:
    """Check that a client-supplied bare ID is a plausible YouTube ID.

    Raises:
        ResolutionError: If the ID contains anything but word chars and dashes.
    """
    if not video_id or not _ID_PATTERN.match(video_id):
        raise ResolutionError(f"Invalid video ID: {video_id!r}")
    return video_id


def resolve(url: str) -> VideoReference:
    """Resolve a URL into an immutable VideoReference."""
    return VideoReference(video_id=parse_video_id(url), video_url=url)


def _download_json(url: str, timeout: float) -> dict | None:
    """Download and parse JSON from a URL."""
    try:
        with urlopen(url, timeout=timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except Exception as e:
        logger.warning("Failed to download JSON from %s: %s", url, e)
        return None


class MetadataFetcher:
    """Fetches cosmetic metadata (title, author) via YouTube oEmbed.

    Never raises: any provider failure yields VideoMetadata.placeholder().
    Duration is a pseudo-random estimate, not real metadata; screenshot
    timestamp selection only needs it to be plausible.
    """

    _OEMBED_URL = "https://www.youtube.com/oembed?url={url}&format=json"

    def __init__(self, rng: random.Random | None = None, timeout: float | None = None) -> None:
        self._rng = rng or random.Random()
        self._timeout = timeout or settings.http_timeout

    def fetch(self, url: str) -> VideoMetadata:
        data = _download_json(self._OEMBED_URL.format(url=quote(url, safe="")), self._timeout)
        if not data:
            logger.info("Metadata unavailable for %s, using placeholder", url)
            return VideoMetadata.placeholder()

        return VideoMetadata(
            video_title=data.get("title") or "Unknown Title",
            video_author=data.get("author_name") or "Unknown Author",
            video_duration=self.estimate_duration(),
        )

    def estimate_duration(self) -> int:
        """Placeholder duration between 5 and 20 minutes."""
        return self._rng.randrange(300, 1200)


class TranscriptAcquirer:
    """Fetches caption text for a video.

    Provider order, one attempt each:
        1. yt-dlp manual subtitles in the preferred languages
        2. yt-dlp auto-generated captions in the same languages
        3. youtube-transcript-api as the alternate provider
    """

    def __init__(self, languages: list[str] | None = None, timeout: float | None = None) -> None:
        self._languages = list(languages or settings.caption_languages)
        self._timeout = timeout or settings.http_timeout

    def fetch(self, video_id: str) -> str | None:
        """Return the flattened transcript, or None if no captions exist."""
        info = self._fetch_info(video_id)
        if info:
            for kind in ("subtitles", "automatic_captions"):
                text = self._from_tracks(info.get(kind) or {})
                if text:
                    logger.info("Transcript for %s from yt-dlp %s", video_id, kind)
                    return text

        text = self._from_alternate(video_id)
        if text:
            logger.info("Transcript for %s from alternate provider", video_id)
            return text

        logger.warning("No transcript available for: %s", video_id)
        return None

    def _fetch_info(self, video_id: str) -> dict | None:
        """Fetch the yt-dlp info dict (caption track listing) without media."""
        ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "writesubtitles": True,
            "writeautomaticsub": True,
            "subtitleslangs": self._languages,
            "subtitlesformat": "json3",
            "skip_download": True,
        }
        url = f"https://www.youtube.com/watch?v={video_id}"
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                return ydl.extract_info(url, download=False)
        except yt_dlp.utils.DownloadError as e:
            logger.warning("yt-dlp could not list captions for %s: %s", video_id, e)
            return None

    def _from_tracks(self, tracks: dict) -> str | None:
        for lang in self._languages:
            for fmt in tracks.get(lang) or []:
                if fmt.get("ext") != "json3":
                    continue
                data = _download_json(fmt["url"], self._timeout)
                text = self._flatten_json3(data) if data else ""
                if text:
                    return text
        return None

    @staticmethod
    def _flatten_json3(data: dict) -> str:
        """Join the caption segments of a json3 track into one string.

        YouTube json3 structure:
            {"events": [{"tStartMs": int, "dDurationMs": int, "segs": [{"utf8": str}]}]}
        """
        parts = []
        for event in data.get("events", []):
            text = "".join(s.get("utf8", "") for s in event.get("segs") or []).strip()
            if text:
                parts.append(text)
        return " ".join(parts)

    def _from_alternate(self, video_id: str) -> str | None:
        try:
            fetched = YouTubeTranscriptApi().fetch(video_id, languages=self._languages)
        except Exception as e:
            logger.warning("Alternate transcript provider failed for %s: %s", video_id, e)
            return None
        text = " ".join(snippet.text.strip() for snippet in fetched if snippet.text.strip())
        return text or None
