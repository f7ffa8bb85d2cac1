"""
Storage operations for the venue database with transaction support.

Provides all CRUD operations for venues, reviews, profiles and the audit log.
"""

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .database import get_connection
from .exceptions import StorageError
from .interfaces import StorageInterface
from .models import (
    AnalysisRunLog,
    AttributeScore,
    RawReview,
    ReviewAnalysis,
    VenueFetchResult,
    VenueMetadata,
    VenueProfile,
)


def parse_timestamp(timestamp_str: str) -> datetime:
    """Parse ISO format timestamp string to a timezone-aware UTC datetime."""
    dt = datetime.fromisoformat(timestamp_str.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class VenueStorage(StorageInterface):
    """
    Handles all database operations for the venue database.

    Supports:
        - One transaction per write method
        - Thread-safe operations (one connection shared by pipeline workers)
        - All-or-nothing profile + annotation writes per venue
        - Resource cleanup
    """

    def __init__(self, db_path: Path):
        """
        Initialize storage.

        Creates database and schema if needed.
        Ensures schema is at current version.
        """
        self.db_path = db_path
        self.conn = get_connection(db_path)
        self._lock = threading.Lock()

    def __enter__(self) -> "VenueStorage":
        return self

    def __exit__(
        self, exc_type: Any, exc_val: Any, exc_tb: Any
    ) -> None:
        """Context manager exit: close the connection."""
        self.close()

    def close(self) -> None:
        """Close database connection and cleanup resources."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def _commit(self) -> None:
        self.conn.commit()

    def _rollback(self) -> None:
        self.conn.rollback()

    # --- Venue Operations ---

    def _upsert_venue_row(self, metadata: VenueMetadata, now: str) -> None:
        self.conn.execute("""
            INSERT INTO venues (
                venue_id, name, address, city, latitude, longitude,
                google_rating, google_review_count, google_maps_url,
                needs_reanalysis, last_scraped_utc
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?)
            ON CONFLICT(venue_id) DO UPDATE SET
                name = excluded.name,
                address = excluded.address,
                city = excluded.city,
                latitude = excluded.latitude,
                longitude = excluded.longitude,
                google_rating = excluded.google_rating,
                google_review_count = excluded.google_review_count,
                google_maps_url = excluded.google_maps_url,
                last_scraped_utc = excluded.last_scraped_utc
        """, (
            metadata.venue_id,
            metadata.name,
            metadata.address,
            metadata.city,
            metadata.latitude,
            metadata.longitude,
            metadata.google_rating,
            metadata.google_review_count,
            metadata.google_maps_url,
            now,
        ))

    def _insert_review_rows(self, venue_id: str, reviews: List[RawReview], now: str) -> int:
        inserted = 0
        for review in reviews:
            cursor = self.conn.execute("""
                INSERT OR IGNORE INTO venue_reviews
                (venue_id, review_id, author, text, rating, timestamp, source, created_utc)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                venue_id,
                review.review_id,
                review.author,
                review.text,
                review.rating,
                review.timestamp,
                review.source,
                now,
            ))
            inserted += cursor.rowcount

        if inserted:
            self.conn.execute(
                "UPDATE venues SET needs_reanalysis = 1 WHERE venue_id = ?", (venue_id,)
            )
        return inserted

    def upsert_venue(self, metadata: VenueMetadata) -> None:
        """Insert venue facts or refresh them, keeping any existing profile."""
        with self._lock:
            try:
                self._upsert_venue_row(metadata, datetime.now(timezone.utc).isoformat())
                self._commit()
            except sqlite3.Error as e:
                self._rollback()
                raise StorageError(f"Failed to upsert venue {metadata.venue_id}: {e}")

    def write_fetch_result(self, result: VenueFetchResult) -> int:
        """
        Store venue facts and newly seen reviews in one transaction.

        Returns:
            Number of newly inserted reviews
        """
        venue_id = result.metadata.venue_id
        with self._lock:
            try:
                now = datetime.now(timezone.utc).isoformat()
                self._upsert_venue_row(result.metadata, now)
                inserted = self._insert_review_rows(venue_id, result.reviews, now)
                self._commit()
                return inserted
            except sqlite3.Error as e:
                self._rollback()
                raise StorageError(f"Failed to store fetch result for {venue_id}: {e}")

    def get_venue(self, venue_id: str) -> Optional[VenueMetadata]:
        """Read venue facts for a single venue."""
        with self._lock:
            try:
                row = self.conn.execute(
                    "SELECT * FROM venues WHERE venue_id = ?", (venue_id,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read venue {venue_id}: {e}")

        if row is None:
            return None

        return VenueMetadata(
            venue_id=row["venue_id"],
            name=row["name"],
            address=row["address"] or "",
            city=row["city"] or "",
            latitude=row["latitude"],
            longitude=row["longitude"],
            google_rating=row["google_rating"],
            google_review_count=row["google_review_count"] or 0,
            google_maps_url=row["google_maps_url"],
        )

    def get_all_venue_ids(self) -> List[str]:
        """Get list of all venue ids."""
        with self._lock:
            try:
                cursor = self.conn.execute("SELECT venue_id FROM venues ORDER BY venue_id")
                return [row[0] for row in cursor.fetchall()]
            except sqlite3.Error as e:
                raise StorageError(f"Failed to get venue ids: {e}")

    def get_venues_needing_analysis(self, limit: Optional[int] = None) -> List[str]:
        """Get venue ids flagged needs_reanalysis, oldest scrape first."""
        query = """
            SELECT venue_id FROM venues
            WHERE needs_reanalysis = 1
            ORDER BY last_scraped_utc, venue_id
        """
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)

        with self._lock:
            try:
                cursor = self.conn.execute(query, params)
                return [row[0] for row in cursor.fetchall()]
            except sqlite3.Error as e:
                raise StorageError(f"Failed to get venues needing analysis: {e}")

    def mark_for_reanalysis(self, venue_id: str) -> None:
        """Set the needs_reanalysis flag for a venue."""
        with self._lock:
            try:
                self.conn.execute(
                    "UPDATE venues SET needs_reanalysis = 1 WHERE venue_id = ?", (venue_id,)
                )
                self._commit()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to mark {venue_id} for reanalysis: {e}")

    # --- Review Operations ---

    def write_reviews(self, venue_id: str, reviews: List[RawReview]) -> int:
        """
        Append reviews for a venue, deduplicated by provider review id.

        Marks the venue for reanalysis when anything new was stored.

        Returns:
            Number of newly inserted reviews
        """
        with self._lock:
            try:
                inserted = self._insert_review_rows(
                    venue_id, reviews, datetime.now(timezone.utc).isoformat()
                )
                self._commit()
                return inserted
            except sqlite3.Error as e:
                self._rollback()
                raise StorageError(f"Failed to write reviews for {venue_id}: {e}")

    def get_reviews(self, venue_id: str) -> List[RawReview]:
        """Get all stored reviews for a venue in ingestion order."""
        with self._lock:
            try:
                rows = self.conn.execute("""
                    SELECT venue_id, review_id, author, text, rating, timestamp, source
                    FROM venue_reviews
                    WHERE venue_id = ?
                    ORDER BY id
                """, (venue_id,)).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read reviews for {venue_id}: {e}")

        return [
            RawReview(
                venue_id=row["venue_id"],
                review_id=row["review_id"],
                author=row["author"] or "Anonymous",
                text=row["text"] or "",
                rating=row["rating"],
                timestamp=row["timestamp"],
                source=row["source"] or "google",
            )
            for row in rows
        ]

    def get_review_analyses(self, venue_id: str) -> Dict[str, ReviewAnalysis]:
        """Get stored per-review annotations keyed by review id."""
        with self._lock:
            try:
                rows = self.conn.execute("""
                    SELECT review_id, is_work_related, work_relevance_score,
                           matched_keywords_json, attributes_json, sentiment_score
                    FROM venue_reviews
                    WHERE venue_id = ? AND analyzed_utc IS NOT NULL
                    ORDER BY id
                """, (venue_id,)).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read review analyses for {venue_id}: {e}")

        analyses: Dict[str, ReviewAnalysis] = {}
        for row in rows:
            attributes = json.loads(row["attributes_json"] or "{}")
            analyses[row["review_id"]] = ReviewAnalysis(
                review_id=row["review_id"],
                is_work_related=bool(row["is_work_related"]),
                work_relevance_score=row["work_relevance_score"] or 0.0,
                matched_keywords=json.loads(row["matched_keywords_json"] or "[]"),
                attributes={
                    name: AttributeScore(**value) for name, value in attributes.items()
                },
                sentiment_score=row["sentiment_score"] or 0.0,
            )
        return analyses

    # --- Profile Operations ---

    def get_venue_profile(self, venue_id: str) -> Optional[VenueProfile]:
        """Read the current profile, or None if the venue was never analyzed."""
        with self._lock:
            try:
                row = self.conn.execute(
                    "SELECT * FROM venues WHERE venue_id = ?", (venue_id,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read profile for {venue_id}: {e}")

        if row is None or row["last_analysis_utc"] is None:
            return None

        return VenueProfile(
            wifi_speed=row["wifi_speed"],
            noise_level=row["noise_level"],
            laptop_policy=row["laptop_policy"],
            good_for_calls=bool(row["good_for_calls"]),
            good_for_focus=bool(row["good_for_focus"]),
            remote_work_score=row["remote_work_score"],
            outlet_rating=row["outlet_rating"],
            seating_rating=row["seating_rating"],
            work_summary=row["work_summary"] or "",
            vibe_tags=json.loads(row["vibe_tags_json"] or "[]"),
            deal_breakers=json.loads(row["deal_breakers_json"] or "[]"),
            ai_confidence_score=row["ai_confidence_score"] or 0.0,
            work_reviews_count=row["work_reviews_count"] or 0,
            total_reviews_count=row["total_reviews_count"] or 0,
            attribute_averages=json.loads(row["attribute_averages_json"] or "{}"),
        )

    def write_venue_analysis(
        self,
        venue_id: str,
        profile: VenueProfile,
        analyses: List[ReviewAnalysis],
        scoring_version: str,
    ) -> None:
        """
        Write profile fields and per-review annotations in one transaction.

        Either everything for the venue is written or nothing is.
        Clears needs_reanalysis and stamps last_analysis_utc.
        """
        with self._lock:
            try:
                now = datetime.now(timezone.utc).isoformat()
                cursor = self.conn.execute("""
                    UPDATE venues SET
                        wifi_speed = ?,
                        noise_level = ?,
                        laptop_policy = ?,
                        good_for_calls = ?,
                        good_for_focus = ?,
                        remote_work_score = ?,
                        outlet_rating = ?,
                        seating_rating = ?,
                        work_summary = ?,
                        vibe_tags_json = ?,
                        deal_breakers_json = ?,
                        ai_confidence_score = ?,
                        work_reviews_count = ?,
                        total_reviews_count = ?,
                        attribute_averages_json = ?,
                        needs_reanalysis = 0,
                        last_analysis_utc = ?,
                        scoring_version = ?
                    WHERE venue_id = ?
                """, (
                    profile.wifi_speed.value,
                    profile.noise_level.value,
                    profile.laptop_policy.value,
                    1 if profile.good_for_calls else 0,
                    1 if profile.good_for_focus else 0,
                    profile.remote_work_score,
                    profile.outlet_rating,
                    profile.seating_rating,
                    profile.work_summary,
                    json.dumps(profile.vibe_tags),
                    json.dumps(profile.deal_breakers),
                    profile.ai_confidence_score,
                    profile.work_reviews_count,
                    profile.total_reviews_count,
                    json.dumps(profile.attribute_averages),
                    now,
                    scoring_version,
                    venue_id,
                ))
                if cursor.rowcount == 0:
                    raise StorageError(f"Unknown venue: {venue_id}")

                for analysis in analyses:
                    self.conn.execute("""
                        UPDATE venue_reviews SET
                            is_work_related = ?,
                            work_relevance_score = ?,
                            matched_keywords_json = ?,
                            attributes_json = ?,
                            sentiment_score = ?,
                            analyzed_utc = ?
                        WHERE venue_id = ? AND review_id = ?
                    """, (
                        1 if analysis.is_work_related else 0,
                        analysis.work_relevance_score,
                        json.dumps(analysis.matched_keywords),
                        json.dumps({
                            name: score.model_dump()
                            for name, score in analysis.attributes.items()
                        }),
                        analysis.sentiment_score,
                        now,
                        venue_id,
                        analysis.review_id,
                    ))

                self._commit()
            except StorageError:
                self._rollback()
                raise
            except sqlite3.Error as e:
                self._rollback()
                raise StorageError(f"Failed to write analysis for {venue_id}: {e}")

    # --- Audit Log Operations ---

    def append_analysis_log(self, log: AnalysisRunLog) -> None:
        """Append one record to analysis_log."""
        with self._lock:
            try:
                created = log.created_at or datetime.now(timezone.utc)
                self.conn.execute("""
                    INSERT INTO analysis_log (
                        venue_id, analysis_type, status, reviews_processed,
                        work_reviews_found, ai_model, ai_cost_usd, processing_time_ms,
                        previous_work_score, new_work_score, score_change,
                        confidence_score, analysis_summary, error_message, created_utc
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    log.venue_id,
                    log.analysis_type.value,
                    log.status.value,
                    log.reviews_processed,
                    log.work_reviews_found,
                    log.ai_model,
                    log.ai_cost_usd,
                    log.processing_time_ms,
                    log.previous_work_score,
                    log.new_work_score,
                    log.score_change,
                    log.confidence_score,
                    log.analysis_summary,
                    log.error_message,
                    created.isoformat(),
                ))
                self._commit()
            except sqlite3.Error as e:
                self._rollback()
                raise StorageError(f"Failed to append analysis log for {log.venue_id}: {e}")

    def get_analysis_logs(self, venue_id: Optional[str] = None) -> List[AnalysisRunLog]:
        """Get audit records (optionally for one venue), oldest first."""
        query = "SELECT * FROM analysis_log"
        params: tuple = ()
        if venue_id is not None:
            query += " WHERE venue_id = ?"
            params = (venue_id,)
        query += " ORDER BY id"

        with self._lock:
            try:
                rows = self.conn.execute(query, params).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read analysis log: {e}")

        return [
            AnalysisRunLog(
                venue_id=row["venue_id"],
                analysis_type=row["analysis_type"],
                status=row["status"],
                reviews_processed=row["reviews_processed"] or 0,
                work_reviews_found=row["work_reviews_found"] or 0,
                ai_model=row["ai_model"] or "",
                ai_cost_usd=row["ai_cost_usd"] or 0.0,
                processing_time_ms=row["processing_time_ms"],
                previous_work_score=row["previous_work_score"],
                new_work_score=row["new_work_score"],
                score_change=row["score_change"],
                confidence_score=row["confidence_score"] or 0.0,
                analysis_summary=row["analysis_summary"],
                error_message=row["error_message"],
                created_at=parse_timestamp(row["created_utc"]),
            )
            for row in rows
        ]

    # --- Meta Info Operations ---

    def write_meta_info(self, key: str, value: str) -> None:
        """Write to meta_info table."""
        with self._lock:
            try:
                self.conn.execute("""
                    INSERT OR REPLACE INTO meta_info (key, value)
                    VALUES (?, ?)
                """, (key, value))
                self._commit()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to write meta info: {e}")

    def get_meta_info(self, key: str) -> Optional[str]:
        """Read from meta_info table."""
        with self._lock:
            try:
                cursor = self.conn.execute(
                    "SELECT value FROM meta_info WHERE key = ?", (key,)
                )
                row = cursor.fetchone()
                return row[0] if row else None
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read meta info: {e}")
