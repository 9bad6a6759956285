# tests/conftest.py
"""Shared fixtures for tubebrief tests."""

import io
import json
import random
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from tubebrief.models import VideoMetadata
from tubebrief.storage.sqlite import Database, SQLiteSummaryRepository, SQLiteUserRepository

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

SUMMARY_PAYLOAD = {
    "keyPoints": [
        "Neural networks are built from layers of neurons",
        "Backpropagation adjusts weights using gradients",
        "Overfitting is controlled with regularization",
    ],
    "summary": "The video introduces machine learning.\nIt then walks through neural networks.",
    "structuredOutline": [
        {"title": "Introduction", "items": ["What is machine learning", "Course overview"]},
        {"title": "Neural Networks", "items": ["Layers", "Activation functions"]},
    ],
}

TERMS_PAYLOAD = {"terms": ["Neural Network", "Backpropagation", "Gradient Descent"]}

SCREENSHOT_CAPTION = "Slide showing a neural network diagram"


def _response(content: str, usage=None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.usage = usage if usage is not None else {
        "prompt_tokens": 1200,
        "completion_tokens": 300,
        "total_tokens": 1500,
    }
    return response


def _fake_completion(**kwargs) -> MagicMock:
    """Route a litellm.completion call to a canned reply by request shape."""
    if not kwargs.get("response_format"):
        return _response(SCREENSHOT_CAPTION)
    system = kwargs["messages"][0]["content"]
    if "Extract key technical terms" in system:
        return _response(json.dumps(TERMS_PAYLOAD))
    return _response(json.dumps(SUMMARY_PAYLOAD))


@pytest.fixture
def make_response():
    """Factory for fake litellm responses."""
    return _response


@pytest.fixture
def sample_transcript():
    return (
        "Hello and welcome to this video. Today we'll talk about machine learning. "
        "Let's start with neural networks. A neural network has layers of neurons. "
        "Thanks for watching, see you next time."
    )


@pytest.fixture
def sample_metadata():
    return VideoMetadata(
        video_title="Intro to Machine Learning",
        video_author="TechChannel",
        video_duration=600,
    )


@pytest.fixture
def jpeg_bytes():
    """A small real JPEG, standing in for a YouTube thumbnail."""
    buf = io.BytesIO()
    Image.new("RGB", (480, 360), (40, 90, 160)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def db():
    """Database backed by an in-memory SQLite file."""
    database = Database(":memory:")
    yield database
    database.close()


@pytest.fixture
def summary_repo(db):
    return SQLiteSummaryRepository(db)


@pytest.fixture
def user_repo(db):
    return SQLiteUserRepository(db)


@pytest.fixture
def alice(user_repo):
    return user_repo.create("alice", "not-a-real-hash")


@pytest.fixture
def bob(user_repo):
    return user_repo.create("bob", "not-a-real-hash")


@pytest.fixture
def admin(user_repo):
    return user_repo.create("root", "not-a-real-hash", is_admin=True)


@pytest.fixture
def mock_llm():
    """LLMClient with mocked litellm.completion and cost lookup."""
    from tubebrief.llm import LLMClient

    with patch("tubebrief.llm.litellm.completion", side_effect=_fake_completion) as mock_completion, \
            patch("tubebrief.llm.litellm.completion_cost", return_value=0.003):
        with patch.dict("os.environ", {"OPENAI_API_KEY": "test-key-123"}):
            client = LLMClient()
            client._mock_completion = mock_completion
            yield client


@pytest.fixture
def summarizer(mock_llm):
    from tubebrief.summarizer import Summarizer

    return Summarizer(mock_llm)


@pytest.fixture
def annotator(summarizer, jpeg_bytes):
    """ScreenshotAnnotator whose thumbnail downloads return jpeg_bytes."""
    from tubebrief.ingestion.screenshots import ScreenshotAnnotator

    ann = ScreenshotAnnotator(summarizer, rng=random.Random(7))
    with patch.object(ann, "_fetch", return_value=jpeg_bytes) as mock:
        ann._mock_fetch = mock
        yield ann


@pytest.fixture
def mock_metadata(sample_metadata):
    fetcher = MagicMock()
    fetcher.fetch.return_value = sample_metadata
    return fetcher


@pytest.fixture
def mock_transcripts(sample_transcript):
    acquirer = MagicMock()
    acquirer.fetch.return_value = sample_transcript
    return acquirer


@pytest.fixture
def service(summary_repo, summarizer, mock_metadata, mock_transcripts, annotator):
    """Fully wired SummaryService with all network dependencies mocked."""
    from tubebrief.service import SummaryService

    return SummaryService(
        repository=summary_repo,
        summarizer=summarizer,
        metadata_fetcher=mock_metadata,
        transcripts=mock_transcripts,
        annotator=annotator,
    )


@pytest.fixture
def auth(user_repo):
    from tubebrief.auth import AuthService

    return AuthService(user_repo)
