# tests/test_sqlite.py
"""Tests for the SQLite repositories."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from tubebrief.models import (
    AISummaryResult,
    OutlineSection,
    PromptStyle,
    ScreenshotDraft,
    SummaryDraft,
    TokenUsage,
)
from tubebrief.storage.sqlite import Database, SQLiteSummaryRepository


def _draft(**overrides) -> SummaryDraft:
    values = dict(
        video_id="dQw4w9WgXcQ",
        video_url="https://youtu.be/dQw4w9WgXcQ",
        video_title="Intro to Machine Learning",
        video_author="TechChannel",
        video_duration=600,
        transcript="hello world",
        key_points=["one", "two"],
        summary="A summary.",
        structured_outline=[OutlineSection(title="Intro", items=["a", "b"])],
        full_prompt="system\n\nuser",
        token_usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15, model="gpt-4o"),
    )
    values.update(overrides)
    return SummaryDraft(**values)


def _shots(*timestamps) -> list[ScreenshotDraft]:
    return [ScreenshotDraft(image_url="aGVsbG8=", timestamp=ts, description=f"at {ts}") for ts in timestamps]


def _screenshot_rows(db, summary_id) -> int:
    return db.query("SELECT COUNT(*) AS n FROM screenshots WHERE summary_id = ?", (summary_id,))[0]["n"]


class TestCreateAndGet:
    def test_create_with_screenshots(self, summary_repo, alice):
        summary = summary_repo.create_summary_with_screenshots(alice.id, _draft(), _shots(300, 140))
        assert summary.id is not None
        assert summary.user_id == alice.id
        assert summary.key_points == ["one", "two"]
        assert summary.structured_outline[0].items == ["a", "b"]
        assert summary.token_usage.total_tokens == 15
        assert [s.timestamp for s in summary.screenshots] == [140, 300]
        assert all(s.summary_id == summary.id for s in summary.screenshots)

    def test_create_with_no_screenshots(self, summary_repo, alice):
        summary = summary_repo.create_summary_with_screenshots(alice.id, _draft(), [])
        assert summary.screenshots == []

    def test_null_transcript_round_trips(self, summary_repo, alice):
        summary = summary_repo.create_summary_with_screenshots(alice.id, _draft(transcript=None), [])
        assert summary_repo.get_summary_with_screenshots(summary.id).transcript is None

    def test_get_not_found(self, summary_repo):
        assert summary_repo.get_summary_with_screenshots(999) is None

    def test_owner_can_read(self, summary_repo, alice):
        created = summary_repo.create_summary_with_screenshots(alice.id, _draft(), [])
        assert summary_repo.get_summary_with_screenshots(created.id, requesting_user_id=alice.id) is not None

    def test_non_owner_sees_nothing(self, summary_repo, alice, bob):
        created = summary_repo.create_summary_with_screenshots(alice.id, _draft(), _shots(100))
        assert summary_repo.get_summary_with_screenshots(created.id, requesting_user_id=bob.id) is None

    def test_unknown_owner_rejected_by_foreign_key(self, summary_repo):
        with pytest.raises(Exception):
            summary_repo.create_summary_with_screenshots(12345, _draft(), [])


class TestAtomicity:
    def test_failed_screenshot_insert_rolls_back_summary(self, db, summary_repo, alice):
        original = SQLiteSummaryRepository._insert_screenshot
        calls = 0

        def flaky_insert(conn, summary_id, draft):
            nonlocal calls
            calls += 1
            if calls == 2:
                raise RuntimeError("disk full")
            return original(conn, summary_id, draft)

        with patch.object(SQLiteSummaryRepository, "_insert_screenshot", side_effect=flaky_insert):
            with pytest.raises(RuntimeError):
                summary_repo.create_summary_with_screenshots(alice.id, _draft(), _shots(10, 20, 30))

        assert summary_repo.get_user_summaries_with_screenshots(alice.id) == []
        assert db.query("SELECT COUNT(*) AS n FROM screenshots")[0]["n"] == 0


class TestListing:
    def test_user_summaries_newest_first(self, summary_repo, alice, bob):
        first = summary_repo.create_summary_with_screenshots(alice.id, _draft(video_title="First"), [])
        second = summary_repo.create_summary_with_screenshots(alice.id, _draft(video_title="Second"), [])
        summary_repo.create_summary_with_screenshots(bob.id, _draft(video_title="Bob's"), [])

        titles = [s.video_title for s in summary_repo.get_user_summaries_with_screenshots(alice.id)]
        assert titles == [second.video_title, first.video_title]

    def test_all_summaries_unfiltered(self, summary_repo, alice, bob):
        summary_repo.create_summary_with_screenshots(alice.id, _draft(), _shots(5))
        summary_repo.create_summary_with_screenshots(bob.id, _draft(), _shots(6, 7))
        everything = summary_repo.get_all_summaries_with_screenshots()
        assert {s.user_id for s in everything} == {alice.id, bob.id}
        assert sorted(len(s.screenshots) for s in everything) == [1, 2]


class TestUpdates:
    def test_update_content_replaces_wholesale(self, summary_repo, alice):
        created = summary_repo.create_summary_with_screenshots(alice.id, _draft(), [])
        result = AISummaryResult(
            key_points=["only point"],
            summary="Shorter.",
            structured_outline=[OutlineSection(title="Single", items=["x"])],
        )
        updated = summary_repo.update_summary_content(
            created.id, result, "concise prompt", PromptStyle.CONCISE, None
        )
        assert updated.key_points == ["only point"]
        assert [s.title for s in updated.structured_outline] == ["Single"]
        assert updated.full_prompt == "concise prompt"
        assert updated.prompt_style == PromptStyle.CONCISE
        assert updated.token_usage is None
        assert updated.updated_at >= created.updated_at

    def test_update_transcript(self, summary_repo, alice):
        created = summary_repo.create_summary_with_screenshots(alice.id, _draft(transcript=None), [])
        assert summary_repo.update_transcript(created.id, "fresh captions").transcript == "fresh captions"

    def test_add_screenshot(self, summary_repo, alice):
        created = summary_repo.create_summary_with_screenshots(alice.id, _draft(), _shots(100))
        shot = summary_repo.add_screenshot(created.id, ScreenshotDraft(image_url="eA==", timestamp=50))
        assert shot.summary_id == created.id
        assert shot.description == ""
        assert [s.timestamp for s in summary_repo.get_screenshots(created.id)] == [50, 100]


class TestDelete:
    def test_delete_removes_screenshots(self, db, summary_repo, alice):
        created = summary_repo.create_summary_with_screenshots(alice.id, _draft(), _shots(1, 2, 3))
        assert summary_repo.delete_summary(created.id) is True
        assert summary_repo.get_summary_with_screenshots(created.id) is None
        assert summary_repo.get_screenshots(created.id) == []
        assert _screenshot_rows(db, created.id) == 0

    def test_delete_nonexistent(self, summary_repo):
        assert summary_repo.delete_summary(999) is False

    def test_schema_cascade_from_summary(self, db, summary_repo, alice):
        created = summary_repo.create_summary_with_screenshots(alice.id, _draft(), _shots(1, 2))
        with db.transaction() as conn:
            conn.execute("DELETE FROM summaries WHERE id = ?", (created.id,))
        assert _screenshot_rows(db, created.id) == 0

    def test_deleting_user_cascades(self, db, summary_repo, user_repo, alice):
        created = summary_repo.create_summary_with_screenshots(alice.id, _draft(), _shots(1))
        assert user_repo.delete(alice.id) is True
        assert summary_repo.get_summary_with_screenshots(created.id) is None
        assert _screenshot_rows(db, created.id) == 0


class TestUserRepository:
    def test_create_and_get(self, user_repo):
        user = user_repo.create("carol", "hash.salt", is_admin=True)
        loaded = user_repo.get(user.id)
        assert loaded.username == "carol"
        assert loaded.password_hash == "hash.salt"
        assert loaded.is_admin is True

    def test_duplicate_username(self, user_repo, alice):
        with pytest.raises(ValueError, match="already exists"):
            user_repo.create("alice", "x")

    def test_get_by_username_and_count(self, user_repo, alice, bob):
        assert user_repo.get_by_username("bob").id == bob.id
        assert user_repo.get_by_username("nobody") is None
        assert user_repo.count() == 2
        assert [u.username for u in user_repo.list_all()] == ["alice", "bob"]

    def test_invitation_token_round_trip(self, user_repo):
        expiry = datetime(2030, 1, 1, tzinfo=timezone.utc)
        user_repo.create("dave", "x", invitation_token="tok123", token_expiry=expiry,
                         is_password_change_required=True)
        loaded = user_repo.get_by_invitation_token("tok123")
        assert loaded.username == "dave"
        assert loaded.token_expiry == expiry
        assert loaded.is_password_change_required is True

    def test_update(self, user_repo, alice):
        alice.is_admin = True
        alice.password_hash = "new.hash"
        updated = user_repo.update(alice)
        assert updated.is_admin is True
        assert updated.password_hash == "new.hash"

    def test_delete_nonexistent(self, user_repo):
        assert user_repo.delete(999) is False


class TestDatabase:
    def test_file_database(self, tmp_path):
        path = tmp_path / "test.db"
        db = Database(str(path))
        db.close()
        assert path.exists()

    def test_foreign_keys_enabled(self, db):
        assert db.query("PRAGMA foreign_keys")[0][0] == 1
