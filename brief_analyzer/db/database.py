from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Generator, Optional

from brief_analyzer.briefs.models import Brief, Creator, ExtractionStatus, utcnow
from brief_analyzer.conversion.models import DraftDeal
from brief_analyzer.errors import AlreadyConverted

DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent.parent / "data" / "briefs.db"
BUSY_TIMEOUT_SECONDS = 10.0

SCHEMA = """
CREATE TABLE IF NOT EXISTS creators (
    id TEXT PRIMARY KEY,
    full_name TEXT NOT NULL,
    subscription_tier TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS briefs (
    id TEXT PRIMARY KEY,
    brief_id TEXT NOT NULL,
    creator_id TEXT NOT NULL REFERENCES creators(id),
    input_type TEXT NOT NULL,
    status TEXT NOT NULL,
    extraction_status TEXT NOT NULL,
    is_converted INTEGER NOT NULL DEFAULT 0,
    is_deleted INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    document TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_briefs_creator ON briefs (creator_id, is_deleted, created_at);
CREATE UNIQUE INDEX IF NOT EXISTS idx_briefs_brief_id ON briefs (creator_id, brief_id);

CREATE TABLE IF NOT EXISTS deals (
    id TEXT PRIMARY KEY,
    creator_id TEXT NOT NULL REFERENCES creators(id),
    brief_id TEXT NOT NULL REFERENCES briefs(id),
    created_at TEXT NOT NULL,
    document TEXT NOT NULL
);
"""

SORT_COLUMNS = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "status": "status",
}

CLAIMABLE_STATES = (ExtractionStatus.PENDING.value, ExtractionStatus.FAILED.value)


def _db_path() -> Path:
    env = os.environ.get("BRIEFS_DB_PATH")
    if env:
        return Path(env)
    return DEFAULT_DB_PATH


@contextmanager
def get_conn(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    path = db_path or _db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=BUSY_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: Path | None = None) -> None:
    with get_conn(db_path) as conn:
        conn.executescript(SCHEMA)


# ---------------------------------------------------------------------------
# Creators
# ---------------------------------------------------------------------------


def insert_creator(creator: Creator, db_path: Path | None = None) -> None:
    with get_conn(db_path) as conn:
        conn.execute(
            """INSERT INTO creators (id, full_name, subscription_tier, created_at)
               VALUES (?, ?, ?, ?)""",
            (creator.id, creator.full_name, creator.subscription_tier.value, utcnow().isoformat()),
        )


def get_creator(creator_id: str, db_path: Path | None = None) -> Creator | None:
    with get_conn(db_path) as conn:
        row = conn.execute("SELECT * FROM creators WHERE id = ?", (creator_id,)).fetchone()
        if row is None:
            return None
        return Creator(id=row["id"], full_name=row["full_name"], subscription_tier=row["subscription_tier"])


# ---------------------------------------------------------------------------
# Briefs
# ---------------------------------------------------------------------------


def _brief_columns(brief: Brief) -> tuple[Any, ...]:
    return (
        brief.brief_id,
        brief.creator_id,
        brief.input_type.value,
        brief.status.value,
        brief.ai_extraction.status.value,
        int(brief.deal_conversion.is_converted),
        int(brief.is_deleted),
        brief.created_at.isoformat(),
        brief.updated_at.isoformat(),
        brief.model_dump_json(),
    )


def _row_to_brief(row: sqlite3.Row) -> Brief:
    return Brief.model_validate_json(row["document"])


def insert_brief(brief: Brief, db_path: Path | None = None) -> None:
    with get_conn(db_path) as conn:
        conn.execute(
            """INSERT INTO briefs
               (brief_id, creator_id, input_type, status, extraction_status,
                is_converted, is_deleted, created_at, updated_at, document, id)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (*_brief_columns(brief), brief.id),
        )


def _select_brief(
    brief_id: str, creator_id: str | None, include_deleted: bool
) -> tuple[str, list[Any]]:
    query = "SELECT document FROM briefs WHERE id = ?"
    params: list[Any] = [brief_id]
    if creator_id is not None:
        query += " AND creator_id = ?"
        params.append(creator_id)
    if not include_deleted:
        query += " AND is_deleted = 0"
    return query, params


def get_brief(
    brief_id: str,
    creator_id: str | None = None,
    include_deleted: bool = False,
    db_path: Path | None = None,
) -> Brief | None:
    query, params = _select_brief(brief_id, creator_id, include_deleted)
    with get_conn(db_path) as conn:
        row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        return _row_to_brief(row)


def mutate_brief(
    brief_id: str,
    mutate: Callable[[Brief], None],
    creator_id: str | None = None,
    include_deleted: bool = False,
    db_path: Path | None = None,
) -> Brief | None:
    """Read a brief, apply ``mutate`` to it and write it back in one write transaction.

    The write lock is taken before the read, so no other writer can commit
    between the two. Anything ``mutate`` raises rolls the transaction back.
    Returns the saved copy, or None when no brief matches.
    """
    query, params = _select_brief(brief_id, creator_id, include_deleted)
    with get_conn(db_path) as conn:
        conn.execute("BEGIN IMMEDIATE")
        row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        brief = _row_to_brief(row)
        mutate(brief)
        brief = brief.model_copy(update={"updated_at": utcnow()})
        conn.execute(
            """UPDATE briefs
               SET brief_id = ?, creator_id = ?, input_type = ?, status = ?,
                   extraction_status = ?, is_converted = ?, is_deleted = ?,
                   created_at = ?, updated_at = ?, document = ?
               WHERE id = ?""",
            (*_brief_columns(brief), brief.id),
        )
    return brief


def increment_view_count(brief_id: str, db_path: Path | None = None) -> None:
    with get_conn(db_path) as conn:
        conn.execute(
            """UPDATE briefs
               SET document = json_set(document, '$.view_count',
                                       json_extract(document, '$.view_count') + 1)
               WHERE id = ?""",
            (brief_id,),
        )


def claim_for_extraction(brief_id: str, db_path: Path | None = None) -> Brief | None:
    """Atomically move a brief's extraction from pending/failed to processing.

    Returns the claimed brief, or None when another run holds it (or it is
    already completed). This is the only way an extraction run may start.
    """
    now = utcnow().isoformat()
    with get_conn(db_path) as conn:
        cursor = conn.execute(
            """UPDATE briefs
               SET extraction_status = ?,
                   updated_at = ?,
                   document = json_set(document,
                                       '$.ai_extraction.status', ?,
                                       '$.updated_at', ?)
               WHERE id = ? AND is_deleted = 0 AND extraction_status IN (?, ?)""",
            (
                ExtractionStatus.PROCESSING.value,
                now,
                ExtractionStatus.PROCESSING.value,
                now,
                brief_id,
                *CLAIMABLE_STATES,
            ),
        )
        if cursor.rowcount == 0:
            return None
        row = conn.execute("SELECT document FROM briefs WHERE id = ?", (brief_id,)).fetchone()
        return _row_to_brief(row)


def list_briefs(
    creator_id: str,
    status: Optional[str] = None,
    input_type: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    limit: int = 20,
    offset: int = 0,
    db_path: Path | None = None,
) -> tuple[list[Brief], int]:
    where = ["creator_id = ?", "is_deleted = 0"]
    params: list[Any] = [creator_id]
    if status:
        where.append("status = ?")
        params.append(status)
    if input_type:
        where.append("input_type = ?")
        params.append(input_type)
    if search:
        like = f"%{search}%"
        where.append(
            """(json_extract(document, '$.ai_extraction.brand_info.name') LIKE ?
                OR json_extract(document, '$.ai_extraction.campaign_info.name') LIKE ?
                OR json_extract(document, '$.original_content.raw_text') LIKE ?
                OR json_extract(document, '$.creator_notes') LIKE ?)"""
        )
        params.extend([like] * 4)

    column = SORT_COLUMNS.get(sort_by, "created_at")
    direction = "ASC" if sort_order == "asc" else "DESC"
    clause = " AND ".join(where)

    with get_conn(db_path) as conn:
        total = conn.execute(f"SELECT COUNT(*) FROM briefs WHERE {clause}", params).fetchone()[0]
        rows = conn.execute(
            f"SELECT document FROM briefs WHERE {clause} ORDER BY {column} {direction} LIMIT ? OFFSET ?",
            [*params, limit, offset],
        ).fetchall()
        return [_row_to_brief(r) for r in rows], total


def get_all_briefs(creator_id: str, db_path: Path | None = None) -> list[Brief]:
    with get_conn(db_path) as conn:
        rows = conn.execute(
            "SELECT document FROM briefs WHERE creator_id = ? AND is_deleted = 0 ORDER BY created_at DESC",
            (creator_id,),
        ).fetchall()
        return [_row_to_brief(r) for r in rows]


def count_briefs_since(
    creator_id: str,
    since: datetime,
    include_deleted: bool = False,
    db_path: Path | None = None,
) -> int:
    query = "SELECT COUNT(*) FROM briefs WHERE creator_id = ? AND created_at >= ?"
    if not include_deleted:
        query += " AND is_deleted = 0"
    with get_conn(db_path) as conn:
        return conn.execute(query, (creator_id, since.isoformat())).fetchone()[0]


# ---------------------------------------------------------------------------
# Deals
# ---------------------------------------------------------------------------


def record_conversion(deal: DraftDeal, brief: Brief, db_path: Path | None = None) -> str:
    """Insert the deal and stamp the brief converted in one transaction.

    Only the brief's status and deal_conversion are written, so edits made
    since ``brief`` was read are kept. Fails with AlreadyConverted if another
    conversion committed first.
    """
    now = utcnow().isoformat()
    with get_conn(db_path) as conn:
        cursor = conn.execute(
            """UPDATE briefs
               SET status = ?, is_converted = 1, updated_at = ?,
                   document = json_set(document,
                                       '$.status', ?,
                                       '$.deal_conversion', json(?),
                                       '$.updated_at', ?)
               WHERE id = ? AND is_converted = 0""",
            (
                brief.status.value,
                now,
                brief.status.value,
                brief.deal_conversion.model_dump_json(),
                now,
                brief.id,
            ),
        )
        if cursor.rowcount == 0:
            raise AlreadyConverted("Brief has already been converted to a deal")
        conn.execute(
            """INSERT INTO deals (id, creator_id, brief_id, created_at, document)
               VALUES (?, ?, ?, ?, ?)""",
            (deal.id, deal.creator_id, brief.id, utcnow().isoformat(), deal.model_dump_json()),
        )
    return deal.id


def get_deal(deal_id: str, db_path: Path | None = None) -> DraftDeal | None:
    with get_conn(db_path) as conn:
        row = conn.execute("SELECT document FROM deals WHERE id = ?", (deal_id,)).fetchone()
        if row is None:
            return None
        return DraftDeal.model_validate_json(row["document"])


def count_deals(db_path: Path | None = None) -> int:
    with get_conn(db_path) as conn:
        return conn.execute("SELECT COUNT(*) FROM deals").fetchone()[0]


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------


def reset_db(db_path: Path | None = None) -> None:
    with get_conn(db_path) as conn:
        conn.execute("DELETE FROM deals")
        conn.execute("DELETE FROM briefs")
        conn.execute("DELETE FROM creators")
