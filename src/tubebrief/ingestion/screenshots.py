"""Screenshot selection and annotation from YouTube thumbnail images.

No video is decoded here. Each timestamp is mapped onto one of the
fixed thumbnail variants YouTube publishes for a video, which is an
approximation of the frame at that point, not true scrubbing.
"""

import base64
import io
import logging
import random
from http.client import HTTPException
from urllib.request import urlopen

from PIL import Image, ImageDraw, ImageEnhance, ImageFont, ImageOps

from tubebrief.config import settings
from tubebrief.models import ScreenshotDraft, format_timestamp
from tubebrief.summarizer import Summarizer

logger = logging.getLogger(__name__)

THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/{variant}.jpg"
THUMBNAIL_VARIANTS = ("hqdefault", "hq1", "hq2", "hq3")
FALLBACK_TIMESTAMPS = (30, 90, 180, 300)
MIN_SHOTS, MAX_SHOTS = 4, 6
SECONDS_PER_SHOT = 120

_BORDER = (33, 33, 33)
_HIGHLIGHT = (255, 196, 0)


class ScreenshotError(Exception):
    """Raised when a screenshot cannot be fetched or annotated."""


def select_timestamps(duration: int) -> list[int]:
    """Evenly spaced timestamps strictly inside the 10%-90% span of the video.

    The count is clamp(duration // 120, 4, 6). An unknown duration (<= 0)
    yields the fixed FALLBACK_TIMESTAMPS. Timestamps are whole seconds, so
    videos shorter than about 5 s get fewer than 4 after rounding collisions
    are dropped.
    """
    if duration <= 0:
        return list(FALLBACK_TIMESTAMPS)

    count = min(max(duration // SECONDS_PER_SHOT, MIN_SHOTS), MAX_SHOTS)
    start, end = 0.1 * duration, 0.9 * duration
    step = (end - start) / (count + 1)
    timestamps: list[int] = []
    for i in range(1, count + 1):
        ts = round(start + step * i)
        if ts not in timestamps:
            timestamps.append(ts)
    return timestamps


def thumbnail_url(video_id: str, timestamp: float, duration: int = 0) -> str:
    """Thumbnail variant for the bucket of the video that timestamp falls in."""
    span = duration if duration > 0 else FALLBACK_TIMESTAMPS[-1] + SECONDS_PER_SHOT
    bucket = int(len(THUMBNAIL_VARIANTS) * max(timestamp, 0) / span)
    variant = THUMBNAIL_VARIANTS[min(bucket, len(THUMBNAIL_VARIANTS) - 1)]
    return THUMBNAIL_URL.format(video_id=video_id, variant=variant)


def annotate(image_bytes: bytes, timestamp: float, rng: random.Random | None = None) -> bytes:
    """Decorate a thumbnail and return it as JPEG bytes.

    Applies a contrast tweak, a border, a timestamp watermark and a few
    highlight rectangles. The rectangles are placed at random; they are
    decoration, not detected regions.
    """
    rng = rng or random.Random()
    with Image.open(io.BytesIO(image_bytes)) as src:
        img = src.convert("RGB")

    img = ImageEnhance.Contrast(img).enhance(1.15)
    img = ImageOps.expand(img, border=4, fill=_BORDER)
    draw = ImageDraw.Draw(img, "RGBA")
    width, height = img.size

    for _ in range(rng.randint(2, 4)):
        box_w = rng.randint(max(width // 8, 1), max(width // 3, 1))
        box_h = rng.randint(max(height // 12, 1), max(height // 5, 1))
        x = rng.randint(0, max(width - box_w, 0))
        y = rng.randint(0, max(height - box_h, 0))
        draw.rectangle(
            [x, y, x + box_w, y + box_h],
            outline=_HIGHLIGHT + (255,),
            fill=_HIGHLIGHT + (48,),
            width=2,
        )

    label = format_timestamp(timestamp)
    font = ImageFont.load_default()
    left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
    text_w, text_h = right - left, bottom - top
    draw.rectangle(
        [width - text_w - 16, height - text_h - 14, width - 4, height - 4],
        fill=(0, 0, 0, 160),
    )
    draw.text((width - text_w - 10, height - text_h - 10), label, fill=(255, 255, 255, 255), font=font)

    out = io.BytesIO()
    img.save(out, format="JPEG", quality=85)
    return out.getvalue()


class ScreenshotAnnotator:
    """Produces annotated, described screenshots for a video.

    Timestamps are processed one after another; a failed timestamp is
    logged and skipped, so extract() may legitimately return [].
    """

    def __init__(
        self,
        summarizer: Summarizer,
        rng: random.Random | None = None,
        timeout: float | None = None,
        preview_timeout: float | None = None,
    ) -> None:
        self._summarizer = summarizer
        self._rng = rng or random.Random()
        self._timeout = timeout or settings.http_timeout
        self._preview_timeout = preview_timeout or settings.preview_timeout

    def extract(self, video_id: str, duration: int) -> list[ScreenshotDraft]:
        """Screenshots at select_timestamps(duration), skipping failures."""
        drafts = []
        for ts in select_timestamps(duration):
            try:
                drafts.append(self.capture(video_id, ts, duration))
            except Exception as e:
                logger.warning("Skipping screenshot at %ss for %s: %s", ts, video_id, e)
        logger.info("Captured %d screenshots for %s", len(drafts), video_id)
        return drafts

    def capture(
        self,
        video_id: str,
        timestamp: int,
        duration: int = 0,
        description: str | None = None,
    ) -> ScreenshotDraft:
        """Capture a single screenshot, e.g. at a user-chosen timestamp.

        Raises:
            ScreenshotError: If the thumbnail cannot be fetched or decoded.
        """
        image = self._fetch(thumbnail_url(video_id, timestamp, duration), self._timeout)
        encoded = self._encode(self._annotate(image, timestamp))
        if description is None:
            description = self._summarizer.describe_screenshot(encoded, timestamp)
        return ScreenshotDraft(image_url=encoded, timestamp=int(timestamp), description=description)

    def preview(self, video_id: str, timestamp: int, duration: int = 0) -> str:
        """Base64 preview image for a timestamp, without a model description.

        The bucketed variant gets a short timeout; on failure the default
        thumbnail is fetched directly instead.

        Raises:
            ScreenshotError: If neither image can be fetched.
        """
        try:
            image = self._fetch(thumbnail_url(video_id, timestamp, duration), self._preview_timeout)
        except ScreenshotError as e:
            logger.info("Preview variant failed for %s, using default thumbnail: %s", video_id, e)
            image = self._fetch(
                THUMBNAIL_URL.format(video_id=video_id, variant=THUMBNAIL_VARIANTS[0]),
                self._timeout,
            )
        return self._encode(self._annotate(image, timestamp))

    def _annotate(self, image: bytes, timestamp: float) -> bytes:
        try:
            return annotate(image, timestamp, self._rng)
        except (OSError, ValueError) as e:
            raise ScreenshotError(f"Could not annotate image: {e}") from e

    @staticmethod
    def _encode(image: bytes) -> str:
        return base64.b64encode(image).decode("ascii")

    @staticmethod
    def _fetch(url: str, timeout: float) -> bytes:
        try:
            with urlopen(url, timeout=timeout) as resp:
                return resp.read()
        except (OSError, ValueError, HTTPException) as e:
            raise ScreenshotError(f"Failed to fetch {url}: {e}") from e
