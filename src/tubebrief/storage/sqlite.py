"""SQLite implementation of the summary and user repositories."""

import json
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from tubebrief.config import settings
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
from tubebrief.storage.repository import SummaryRepository, UserRepository


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """A shared sqlite3 connection with schema setup and transactions.

    Uses stdlib sqlite3. The connection is shared between request
    threads, so every statement runs under one re-entrant lock.
    Foreign keys cascade deletes from users to summaries to screenshots.
    """

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS users (
            id                          INTEGER PRIMARY KEY AUTOINCREMENT,
            username                    TEXT NOT NULL UNIQUE,
            password                    TEXT NOT NULL,
            is_admin                    INTEGER NOT NULL DEFAULT 0,
            invitation_token            TEXT UNIQUE,
            token_expiry                TEXT,
            is_password_change_required INTEGER NOT NULL DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS summaries (
            id                 INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id            INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            video_id           TEXT NOT NULL,
            video_url          TEXT NOT NULL,
            video_title        TEXT NOT NULL,
            video_author       TEXT NOT NULL,
            video_duration     INTEGER NOT NULL DEFAULT 0,
            transcript         TEXT,
            key_points         TEXT NOT NULL DEFAULT '[]',
            summary            TEXT NOT NULL DEFAULT '',
            structured_outline TEXT NOT NULL DEFAULT '[]',
            full_prompt        TEXT NOT NULL DEFAULT '',
            prompt_style       TEXT NOT NULL DEFAULT 'standard',
            token_usage        TEXT,
            created_at         TEXT NOT NULL,
            updated_at         TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_summaries_user ON summaries(user_id);

        CREATE TABLE IF NOT EXISTS screenshots (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            summary_id  INTEGER NOT NULL REFERENCES summaries(id) ON DELETE CASCADE,
            image_url   TEXT NOT NULL,
            timestamp   INTEGER NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            created_at  TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_screenshots_summary ON screenshots(summary_id);
    """

    def __init__(self, db_path: str | None = None) -> None:
        """Open (and if needed create) the database.

        Args:
            db_path: Path to SQLite database file. Defaults to settings.db_path.
                     Use ":memory:" for testing.
        """
        self._db_path = db_path or str(settings.db_path)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.RLock()
        self._init_db()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        with self._lock:
            self._conn.executescript(self._SCHEMA)
            self._conn.commit()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back everything on any exception."""
        with self._lock, self._conn:
            yield self._conn

    def query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class SQLiteSummaryRepository(SummaryRepository):
    """SQLite-backed summary storage.

    Key points, outline and token usage live in JSON text columns;
    screenshots are rows in their own table.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_summary_with_screenshots(
        self, user_id: int, draft: SummaryDraft, screenshots: list[ScreenshotDraft]
    ) -> Summary:
        sql = """
            INSERT INTO summaries (
                user_id, video_id, video_url, video_title, video_author,
                video_duration, transcript, key_points, summary,
                structured_outline, full_prompt, prompt_style, token_usage,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        now = _now()
        with self._db.transaction() as conn:
            cur = conn.execute(sql, (
                user_id,
                draft.video_id,
                draft.video_url,
                draft.video_title,
                draft.video_author,
                draft.video_duration,
                draft.transcript,
                json.dumps(draft.key_points),
                draft.summary,
                json.dumps([s.model_dump() for s in draft.structured_outline]),
                draft.full_prompt,
                PromptStyle(draft.prompt_style).value,
                self._dump_usage(draft.token_usage),
                now,
                now,
            ))
            summary_id = cur.lastrowid
            for shot in screenshots:
                self._insert_screenshot(conn, summary_id, shot)

        return self.get_summary_with_screenshots(summary_id)

    def get_summary_with_screenshots(
        self, summary_id: int, requesting_user_id: int | None = None
    ) -> Summary | None:
        rows = self._db.query("SELECT * FROM summaries WHERE id = ?", (summary_id,))
        if not rows:
            return None
        if requesting_user_id is not None and rows[0]["user_id"] != requesting_user_id:
            return None
        return self._with_screenshots(rows)[0]

    def get_user_summaries_with_screenshots(self, user_id: int) -> list[Summary]:
        sql = "SELECT * FROM summaries WHERE user_id = ? ORDER BY created_at DESC, id DESC"
        return self._with_screenshots(self._db.query(sql, (user_id,)))

    def get_all_summaries_with_screenshots(self) -> list[Summary]:
        sql = "SELECT * FROM summaries ORDER BY created_at DESC, id DESC"
        return self._with_screenshots(self._db.query(sql))

    def update_summary_content(
        self,
        summary_id: int,
        result: AISummaryResult,
        full_prompt: str,
        style: PromptStyle,
        usage: TokenUsage | None = None,
    ) -> Summary | None:
        sql = """
            UPDATE summaries SET
                key_points = ?, summary = ?, structured_outline = ?,
                full_prompt = ?, prompt_style = ?, token_usage = ?, updated_at = ?
            WHERE id = ?
        """
        with self._db.transaction() as conn:
            conn.execute(sql, (
                json.dumps(result.key_points),
                result.summary,
                json.dumps([s.model_dump() for s in result.structured_outline]),
                full_prompt,
                PromptStyle(style).value,
                self._dump_usage(usage),
                _now(),
                summary_id,
            ))
        return self.get_summary_with_screenshots(summary_id)

    def update_transcript(self, summary_id: int, transcript: str) -> Summary | None:
        with self._db.transaction() as conn:
            conn.execute(
                "UPDATE summaries SET transcript = ?, updated_at = ? WHERE id = ?",
                (transcript, _now(), summary_id),
            )
        return self.get_summary_with_screenshots(summary_id)

    def add_screenshot(self, summary_id: int, draft: ScreenshotDraft) -> Screenshot:
        with self._db.transaction() as conn:
            shot_id = self._insert_screenshot(conn, summary_id, draft)
        rows = self._db.query("SELECT * FROM screenshots WHERE id = ?", (shot_id,))
        return self._row_to_screenshot(rows[0])

    def get_screenshots(self, summary_id: int) -> list[Screenshot]:
        sql = "SELECT * FROM screenshots WHERE summary_id = ? ORDER BY timestamp, id"
        return [self._row_to_screenshot(r) for r in self._db.query(sql, (summary_id,))]

    def delete_summary(self, summary_id: int) -> bool:
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM screenshots WHERE summary_id = ?", (summary_id,))
            cur = conn.execute("DELETE FROM summaries WHERE id = ?", (summary_id,))
        return cur.rowcount > 0

    @staticmethod
    def _insert_screenshot(conn: sqlite3.Connection, summary_id: int, draft: ScreenshotDraft) -> int:
        cur = conn.execute(
            "INSERT INTO screenshots (summary_id, image_url, timestamp, description, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (summary_id, draft.image_url, int(draft.timestamp), draft.description or "", _now()),
        )
        return cur.lastrowid

    def _with_screenshots(self, rows: list[sqlite3.Row]) -> list[Summary]:
        """Convert summary rows, loading all their screenshots in one query."""
        if not rows:
            return []
        ids = [row["id"] for row in rows]
        placeholders = ", ".join("?" for _ in ids)
        shot_rows = self._db.query(
            f"SELECT * FROM screenshots WHERE summary_id IN ({placeholders}) ORDER BY timestamp, id",
            tuple(ids),
        )
        by_summary: dict[int, list[Screenshot]] = {i: [] for i in ids}
        for r in shot_rows:
            by_summary[r["summary_id"]].append(self._row_to_screenshot(r))
        return [self._row_to_summary(row, by_summary[row["id"]]) for row in rows]

    @staticmethod
    def _dump_usage(usage: TokenUsage | None) -> str | None:
        return usage.model_dump_json() if usage is not None else None

    @staticmethod
    def _row_to_summary(row: sqlite3.Row, screenshots: list[Screenshot]) -> Summary:
        usage = row["token_usage"]
        return Summary(
            id=row["id"],
            user_id=row["user_id"],
            video_id=row["video_id"],
            video_url=row["video_url"],
            video_title=row["video_title"],
            video_author=row["video_author"],
            video_duration=row["video_duration"],
            transcript=row["transcript"],
            key_points=json.loads(row["key_points"]),
            summary=row["summary"],
            structured_outline=json.loads(row["structured_outline"]),
            full_prompt=row["full_prompt"],
            prompt_style=row["prompt_style"],
            token_usage=TokenUsage.model_validate_json(usage) if usage else None,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            screenshots=screenshots,
        )

    @staticmethod
    def _row_to_screenshot(row: sqlite3.Row) -> Screenshot:
        return Screenshot(
            id=row["id"],
            summary_id=row["summary_id"],
            image_url=row["image_url"],
            timestamp=row["timestamp"],
            description=row["description"],
            created_at=row["created_at"],
        )


class SQLiteUserRepository(UserRepository):
    """SQLite-backed user storage."""

    def __init__(self, db: Database) -> None:
        self._db = db

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
        sql = """
            INSERT INTO users (
                username, password, is_admin, invitation_token,
                token_expiry, is_password_change_required
            ) VALUES (?, ?, ?, ?, ?, ?)
        """
        try:
            with self._db.transaction() as conn:
                cur = conn.execute(sql, (
                    username,
                    password_hash,
                    int(is_admin),
                    invitation_token,
                    token_expiry.isoformat() if token_expiry else None,
                    int(is_password_change_required),
                ))
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Username already exists: {username}") from e
        return self.get(cur.lastrowid)

    def get(self, user_id: int) -> User | None:
        return self._one("SELECT * FROM users WHERE id = ?", (user_id,))

    def get_by_username(self, username: str) -> User | None:
        return self._one("SELECT * FROM users WHERE username = ?", (username,))

    def get_by_invitation_token(self, token: str) -> User | None:
        return self._one("SELECT * FROM users WHERE invitation_token = ?", (token,))

    def list_all(self) -> list[User]:
        return [self._row_to_user(r) for r in self._db.query("SELECT * FROM users ORDER BY id")]

    def count(self) -> int:
        return self._db.query("SELECT COUNT(*) AS n FROM users")[0]["n"]

    def update(self, user: User) -> User:
        sql = """
            UPDATE users SET
                username = ?, password = ?, is_admin = ?, invitation_token = ?,
                token_expiry = ?, is_password_change_required = ?
            WHERE id = ?
        """
        try:
            with self._db.transaction() as conn:
                conn.execute(sql, (
                    user.username,
                    user.password_hash,
                    int(user.is_admin),
                    user.invitation_token,
                    user.token_expiry.isoformat() if user.token_expiry else None,
                    int(user.is_password_change_required),
                    user.id,
                ))
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Username already exists: {user.username}") from e
        return self.get(user.id)

    def delete(self, user_id: int) -> bool:
        with self._db.transaction() as conn:
            cur = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        return cur.rowcount > 0

    def _one(self, sql: str, params: tuple) -> User | None:
        rows = self._db.query(sql, params)
        return self._row_to_user(rows[0]) if rows else None

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            password_hash=row["password"],
            is_admin=bool(row["is_admin"]),
            invitation_token=row["invitation_token"],
            token_expiry=row["token_expiry"],
            is_password_change_required=bool(row["is_password_change_required"]),
        )
