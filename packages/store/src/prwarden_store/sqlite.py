"""SQLiteStore: file-based relational store for the review pipeline.

Why SQLite:
- Batteries included: ships with Python, no extra dependencies.
- UNIQUE constraints give us the idempotency key enforcement the entity
  resolver needs, with no extra coordination between webhook workers.
- Foreign keys keep the Finding → Review → PullRequest → Repository → User
  chain consistent.

One connection is shared by every thread (webhook handlers and queue
workers) and guarded by a lock; SQLite serialises writers anyway.
"""

from __future__ import annotations

import logging
import sqlite3
import threading

from prwarden_store.base import BaseStore, DuplicateRecordError
from prwarden_store.models import (
    Finding,
    PullRequest,
    Repository,
    Review,
    ReviewDetail,
    User,
    clamp_score,
    utcnow,
)

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    origin_id   TEXT UNIQUE,
    name        TEXT NOT NULL,
    email       TEXT NOT NULL UNIQUE,
    avatar_url  TEXT,
    created_at  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS repositories (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    origin_id   INTEGER NOT NULL UNIQUE,
    name        TEXT NOT NULL,
    full_name   TEXT NOT NULL,
    owner       TEXT NOT NULL,
    private     INTEGER NOT NULL DEFAULT 0,
    is_active   INTEGER NOT NULL DEFAULT 1,
    user_id     INTEGER NOT NULL REFERENCES users (id),
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS pull_requests (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    origin_id       INTEGER NOT NULL UNIQUE,
    number          INTEGER NOT NULL,
    title           TEXT NOT NULL,
    state           TEXT NOT NULL,
    repository_id   INTEGER NOT NULL REFERENCES repositories (id),
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    UNIQUE (repository_id, number)
);
CREATE TABLE IF NOT EXISTS reviews (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    status           TEXT NOT NULL DEFAULT 'pending',
    summary          TEXT,
    score            INTEGER,
    pull_request_id  INTEGER NOT NULL REFERENCES pull_requests (id),
    user_id          INTEGER NOT NULL REFERENCES users (id),
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS findings (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    review_id    INTEGER NOT NULL REFERENCES reviews (id),
    content      TEXT NOT NULL,
    category     TEXT NOT NULL,
    severity     TEXT NOT NULL,
    file_path    TEXT,
    line_number  INTEGER,
    created_at   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_reviews_pr       ON reviews (pull_request_id);
CREATE INDEX IF NOT EXISTS idx_findings_review  ON findings (review_id);
"""


class SQLiteStore(BaseStore):
    """Stores pipeline entities in a local SQLite database file.

    The database file path defaults to `.prwarden.db` in the current working
    directory. Configure via .prwarden.yml: `store_path: /path/to/prwarden.db`.
    """

    def __init__(self, db_path: str = ".prwarden.db"):
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _insert(self, sql: str, params: tuple) -> int:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
            except sqlite3.IntegrityError as e:
                self._conn.rollback()
                if "UNIQUE" in str(e):
                    raise DuplicateRecordError(str(e)) from e
                raise
            self._conn.commit()
            return cursor.lastrowid

    def _fetchone(self, sql: str, params: tuple) -> sqlite3.Row | None:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    # ------------------------------------------------------------------ #
    # Users                                                                #
    # ------------------------------------------------------------------ #

    def get_user_by_origin_id(self, origin_id: str) -> User | None:
        row = self._fetchone("SELECT * FROM users WHERE origin_id=?", (origin_id,))
        return self._row_to_user(row) if row else None

    def create_user(self, origin_id, name, email, avatar_url=None) -> User:
        user_id = self._insert(
            "INSERT INTO users (origin_id, name, email, avatar_url, created_at) VALUES (?, ?, ?, ?, ?)",
            (origin_id, name, email, avatar_url, utcnow()),
        )
        return self._row_to_user(self._fetchone("SELECT * FROM users WHERE id=?", (user_id,)))

    # ------------------------------------------------------------------ #
    # Repositories                                                         #
    # ------------------------------------------------------------------ #

    def get_repository_by_origin_id(self, origin_id: int) -> Repository | None:
        row = self._fetchone("SELECT * FROM repositories WHERE origin_id=?", (origin_id,))
        return self._row_to_repository(row) if row else None

    def create_repository(self, origin_id, name, full_name, owner, user_id, private=False) -> Repository:
        now = utcnow()
        repo_id = self._insert(
            """
            INSERT INTO repositories
              (origin_id, name, full_name, owner, private, is_active, user_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?)
            """,
            (origin_id, name, full_name, owner, int(bool(private)), user_id, now, now),
        )
        return self._row_to_repository(self._fetchone("SELECT * FROM repositories WHERE id=?", (repo_id,)))

    # ------------------------------------------------------------------ #
    # Pull requests                                                        #
    # ------------------------------------------------------------------ #

    def get_pull_request_by_origin_id(self, origin_id: int) -> PullRequest | None:
        row = self._fetchone("SELECT * FROM pull_requests WHERE origin_id=?", (origin_id,))
        return self._row_to_pull_request(row) if row else None

    def create_pull_request(self, origin_id, number, title, state, repository_id) -> PullRequest:
        now = utcnow()
        pr_id = self._insert(
            """
            INSERT INTO pull_requests
              (origin_id, number, title, state, repository_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (origin_id, number, title, state, repository_id, now, now),
        )
        return self._row_to_pull_request(self._fetchone("SELECT * FROM pull_requests WHERE id=?", (pr_id,)))

    def update_pull_request(self, pull_request_id: int, title: str, state: str) -> PullRequest:
        with self._lock:
            self._conn.execute(
                "UPDATE pull_requests SET title=?, state=?, updated_at=? WHERE id=?",
                (title, state, utcnow(), pull_request_id),
            )
            self._conn.commit()
        row = self._fetchone("SELECT * FROM pull_requests WHERE id=?", (pull_request_id,))
        if row is None:
            raise KeyError(f"Pull request {pull_request_id} not found")
        return self._row_to_pull_request(row)

    # ------------------------------------------------------------------ #
    # Reviews and findings                                                 #
    # ------------------------------------------------------------------ #

    def create_review(self, pull_request_id: int, user_id: int, status: str = "pending") -> Review:
        now = utcnow()
        review_id = self._insert(
            "INSERT INTO reviews (status, pull_request_id, user_id, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (status, pull_request_id, user_id, now, now),
        )
        return self._row_to_review(self._fetchone("SELECT * FROM reviews WHERE id=?", (review_id,)))

    def update_review(self, review_id, status=None, summary=None, score=None) -> Review:
        assignments = ["updated_at=?"]
        params: list = [utcnow()]
        if status is not None:
            assignments.append("status=?")
            params.append(status)
        if summary is not None:
            assignments.append("summary=?")
            params.append(summary)
        if score is not None:
            assignments.append("score=?")
            params.append(clamp_score(score))
        params.append(review_id)

        with self._lock:
            self._conn.execute(f"UPDATE reviews SET {', '.join(assignments)} WHERE id=?", tuple(params))
            self._conn.commit()
        row = self._fetchone("SELECT * FROM reviews WHERE id=?", (review_id,))
        if row is None:
            raise KeyError(f"Review {review_id} not found")
        return self._row_to_review(row)

    def create_finding(self, review_id, content, category, severity, file_path=None, line_number=None) -> Finding:
        finding_id = self._insert(
            """
            INSERT INTO findings
              (review_id, content, category, severity, file_path, line_number, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (review_id, content, category, severity, file_path, line_number, utcnow()),
        )
        return self._row_to_finding(self._fetchone("SELECT * FROM findings WHERE id=?", (finding_id,)))

    def get_review(self, review_id: int) -> ReviewDetail | None:
        row = self._fetchone("SELECT * FROM reviews WHERE id=?", (review_id,))
        if row is None:
            return None
        return self._build_detail(self._row_to_review(row))

    def list_reviews(self, repo: str | None = None) -> list[ReviewDetail]:
        with self._lock:
            if repo is not None:
                rows = self._conn.execute(
                    """
                    SELECT r.* FROM reviews r
                    JOIN pull_requests p ON p.id = r.pull_request_id
                    JOIN repositories g ON g.id = p.repository_id
                    WHERE g.full_name=?
                    ORDER BY r.created_at DESC, r.id DESC
                    """,
                    (repo,),
                ).fetchall()
            else:
                rows = self._conn.execute("SELECT * FROM reviews ORDER BY created_at DESC, id DESC").fetchall()

        return [self._build_detail(self._row_to_review(r)) for r in rows]

    def list_reviews_by_status(self, statuses: tuple[str, ...]) -> list[ReviewDetail]:
        if not statuses:
            return []
        placeholders = ", ".join("?" for _ in statuses)
        with self._lock:
            rows = self._conn.execute(
                f"SELECT * FROM reviews WHERE status IN ({placeholders}) ORDER BY created_at, id",
                tuple(statuses),
            ).fetchall()
        return [self._build_detail(self._row_to_review(r)) for r in rows]

    def health_check(self) -> bool:
        try:
            self._fetchone("SELECT 1", ())
        except sqlite3.Error as e:
            logger.warning("SQLiteStore health check failed: %s", e)
            return False
        return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------ #
    # Row mapping                                                          #
    # ------------------------------------------------------------------ #

    def _build_detail(self, review: Review) -> ReviewDetail:
        pr_row = self._fetchone("SELECT * FROM pull_requests WHERE id=?", (review.pull_request_id,))
        pull_request = self._row_to_pull_request(pr_row)
        repo_row = self._fetchone("SELECT * FROM repositories WHERE id=?", (pull_request.repository_id,))
        with self._lock:
            finding_rows = self._conn.execute(
                "SELECT * FROM findings WHERE review_id=? ORDER BY id", (review.id,)
            ).fetchall()
        return ReviewDetail(
            review=review,
            pull_request=pull_request,
            repository=self._row_to_repository(repo_row),
            findings=[self._row_to_finding(f) for f in finding_rows],
        )

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            origin_id=row["origin_id"],
            name=row["name"],
            email=row["email"],
            avatar_url=row["avatar_url"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_repository(row: sqlite3.Row) -> Repository:
        return Repository(
            id=row["id"],
            origin_id=row["origin_id"],
            name=row["name"],
            full_name=row["full_name"],
            owner=row["owner"],
            private=bool(row["private"]),
            is_active=bool(row["is_active"]),
            user_id=row["user_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_pull_request(row: sqlite3.Row) -> PullRequest:
        return PullRequest(
            id=row["id"],
            origin_id=row["origin_id"],
            number=row["number"],
            title=row["title"],
            state=row["state"],
            repository_id=row["repository_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_review(row: sqlite3.Row) -> Review:
        return Review(
            id=row["id"],
            status=row["status"],
            summary=row["summary"],
            score=row["score"],
            pull_request_id=row["pull_request_id"],
            user_id=row["user_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_finding(row: sqlite3.Row) -> Finding:
        return Finding(
            id=row["id"],
            review_id=row["review_id"],
            content=row["content"],
            category=row["category"],
            severity=row["severity"],
            file_path=row["file_path"],
            line_number=row["line_number"],
            created_at=row["created_at"],
        )
