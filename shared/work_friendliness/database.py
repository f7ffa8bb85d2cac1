"""
SQLite schema and connection management for the venue database.

Handles schema creation and versioning.
"""

import sqlite3
from pathlib import Path
from typing import Optional

from .exceptions import StorageError

# Current schema version
SCHEMA_VERSION = "1.0"


def get_schema_version(conn: sqlite3.Connection) -> Optional[str]:
    """
    Get current schema version from database.

    Returns:
        Schema version string (e.g., "1.0") or None if not set.
    """
    try:
        cursor = conn.execute(
            "SELECT value FROM meta_info WHERE key = 'schema_version'"
        )
        row = cursor.fetchone()
        return row[0] if row else None
    except sqlite3.OperationalError:
        # Table doesn't exist
        return None


def create_schema(conn: sqlite3.Connection) -> None:
    """
    Create all tables in the venue database and set schema version.

    Tables:
        - venues (venue facts + current work-friendliness profile)
        - venue_reviews (raw reviews + per-review analysis annotations)
        - analysis_log (one audit record per analysis run)
        - meta_info (versioning metadata)
    """
    cursor = conn.cursor()

    # meta_info - General metadata and build info
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS meta_info (
            key     TEXT PRIMARY KEY,
            value   TEXT
        )
    """)

    # venues - Main query table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS venues (
            venue_id            TEXT PRIMARY KEY,

            -- ============================================
            -- PROVIDER FACTS
            -- ============================================
            name                TEXT NOT NULL,
            address             TEXT,
            city                TEXT,
            latitude            REAL,
            longitude           REAL,
            google_rating       REAL,
            google_review_count INTEGER,
            google_maps_url     TEXT,

            -- ============================================
            -- WORK-FRIENDLINESS PROFILE (NULL until first analysis)
            -- ============================================
            wifi_speed          TEXT,       -- fast | adequate | slow
            noise_level         TEXT,       -- quiet | moderate | loud
            laptop_policy       TEXT,       -- encouraged | allowed | discouraged
            good_for_calls      INTEGER,
            good_for_focus      INTEGER,
            remote_work_score   INTEGER,    -- 0-10
            outlet_rating       INTEGER,    -- 1-5
            seating_rating      INTEGER,    -- 1-5
            work_summary        TEXT,
            vibe_tags_json      TEXT,
            deal_breakers_json  TEXT,
            ai_confidence_score REAL,
            work_reviews_count  INTEGER,
            total_reviews_count INTEGER,
            attribute_averages_json TEXT,

            -- ============================================
            -- LIFECYCLE / PROVENANCE
            -- ============================================
            needs_reanalysis    INTEGER NOT NULL DEFAULT 1,
            last_scraped_utc    TEXT,
            last_analysis_utc   TEXT,
            scoring_version     TEXT
        )
    """)

    # venue_reviews - Raw reviews with analysis annotations
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS venue_reviews (
            id                  INTEGER PRIMARY KEY,
            venue_id            TEXT NOT NULL,
            review_id           TEXT NOT NULL,
            author              TEXT,
            text                TEXT,
            rating              INTEGER,
            timestamp           INTEGER,
            source              TEXT,

            -- Annotations (overwritten on reanalysis)
            is_work_related     INTEGER,
            work_relevance_score REAL,
            matched_keywords_json TEXT,
            attributes_json     TEXT,
            sentiment_score     REAL,
            analyzed_utc        TEXT,

            created_utc         TEXT,
            UNIQUE(venue_id, review_id)
        )
    """)

    # analysis_log - Audit trail
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS analysis_log (
            id                  INTEGER PRIMARY KEY,
            venue_id            TEXT NOT NULL,
            analysis_type       TEXT NOT NULL,
            status              TEXT NOT NULL,   -- completed | failed | skipped
            reviews_processed   INTEGER,
            work_reviews_found  INTEGER,
            ai_model            TEXT,
            ai_cost_usd         REAL,
            processing_time_ms  INTEGER NOT NULL,
            previous_work_score INTEGER,
            new_work_score      INTEGER,
            score_change        INTEGER,
            confidence_score    REAL,
            analysis_summary    TEXT,
            error_message       TEXT,
            created_utc         TEXT NOT NULL
        )
    """)

    # Create indexes for performance
    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_venue_reviews_venue
        ON venue_reviews(venue_id)
    """)
    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_venues_needs_reanalysis
        ON venues(needs_reanalysis)
    """)
    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_analysis_log_venue
        ON analysis_log(venue_id, created_utc)
    """)

    # Set schema version
    cursor.execute("""
        INSERT OR REPLACE INTO meta_info (key, value)
        VALUES ('schema_version', ?)
    """, (SCHEMA_VERSION,))

    conn.commit()


def ensure_schema_version(conn: sqlite3.Connection) -> None:
    """
    Ensure database schema is at current version.

    If schema doesn't exist, creates it.
    If schema exists at another version, raises error.
    """
    current_version = get_schema_version(conn)

    if current_version is None:
        # No schema, create it
        create_schema(conn)
    elif current_version != SCHEMA_VERSION:
        raise StorageError(
            f"Database schema version {current_version} does not match "
            f"library version {SCHEMA_VERSION}. Rebuild the database."
        )


def get_connection(db_path: Path) -> sqlite3.Connection:
    """
    Get a connection to the venue database.

    Creates the database and schema if it doesn't exist.
    The connection is shared between pipeline worker threads; callers
    serialize writes.

    Args:
        db_path: Path to the database file

    Returns:
        Connection with schema at current version.
    """
    db_path = Path(db_path)
    if db_path.parent and not db_path.parent.exists():
        db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
    except sqlite3.Error as e:
        raise StorageError(f"Failed to open database {db_path}: {e}")
    conn.row_factory = sqlite3.Row

    # Ensure schema is current
    ensure_schema_version(conn)

    return conn
