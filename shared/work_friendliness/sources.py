"""
Review source implementations for work_friendliness library.

Provides different sources of review data that can be used by ingestion
and the analysis pipeline.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .exceptions import ReviewSourceError
from .interfaces import ReviewSource
from .models import RawReview, VenueFetchResult, VenueMetadata

logger = logging.getLogger(__name__)


def _is_transient(exc: BaseException) -> bool:
    """Transport failures and 5xx responses are worth retrying; 4xx are not."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def extract_city_from_address(address: str) -> str:
    """Second-to-last comma separated part of a full address."""
    parts = [part.strip() for part in address.split(",")]
    if len(parts) >= 2 and parts[-2]:
        return parts[-2]
    return "Unknown"


def parse_review(venue_id: str, item: Dict[str, Any], source: str) -> Optional[RawReview]:
    """
    Convert one provider review dict to RawReview.

    Provider reviews without an id get a synthetic one from author id and
    timestamp so repeated scrapes deduplicate.

    Returns:
        RawReview, or None if the review has no usable star rating
    """
    rating = item.get("review_rating")
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        rating = 0
    if not 1 <= rating <= 5:
        logger.warning(f"Skipping review without valid rating for {venue_id}: {rating!r}")
        return None

    timestamp = item.get("review_timestamp")
    try:
        timestamp = int(timestamp) if timestamp is not None else None
    except (TypeError, ValueError):
        timestamp = None

    review_id = item.get("review_id") or f"{item.get('author_id')}_{timestamp}"

    return RawReview(
        venue_id=venue_id,
        review_id=str(review_id),
        author=item.get("author_title") or "Anonymous",
        text=item.get("review_text") or "",
        rating=rating,
        timestamp=timestamp,
        source=source,
    )


def parse_place(venue_id: str, place: Dict[str, Any], source: str) -> VenueFetchResult:
    """Convert one provider place dict (with reviews_data) to VenueFetchResult."""
    address = place.get("full_address") or place.get("address") or ""
    metadata = VenueMetadata(
        venue_id=venue_id,
        name=place.get("name") or "Unknown",
        address=address,
        city=place.get("city") or extract_city_from_address(address),
        latitude=place.get("latitude"),
        longitude=place.get("longitude"),
        google_rating=place.get("rating"),
        google_review_count=place.get("reviews") or place.get("reviews_count") or 0,
        google_maps_url=place.get("location_link"),
    )

    reviews: List[RawReview] = []
    for item in place.get("reviews_data") or []:
        review = parse_review(venue_id, item, source)
        if review is not None:
            reviews.append(review)

    return VenueFetchResult(metadata=metadata, reviews=reviews)


def first_place(payload: Any) -> Optional[Dict[str, Any]]:
    """
    Pick the place dict out of a reviews-v3 response.

    Synchronous responses wrap results in {"data": [...]}; some exports are
    the bare list. Either may nest one more list level per query.
    """
    results = payload.get("data") if isinstance(payload, dict) else payload
    if not isinstance(results, list) or not results:
        return None
    place = results[0]
    if isinstance(place, list):
        place = place[0] if place else None
    return place if isinstance(place, dict) else None


class OutscraperReviewSource(ReviewSource):
    """
    Fetch venue facts and reviews from the Outscraper Google Maps API.

    Uses GET /maps/reviews-v3 synchronously (async=false). Transport errors and
    5xx responses are retried with exponential backoff; anything still failing
    surfaces as ReviewSourceError.
    """

    REVIEWS_ENDPOINT = "/maps/reviews-v3"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.app.outscraper.com",
        reviews_limit: int = 100,
        language: str = "en",
        region: str = "us",
        timeout_seconds: float = 60.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize Outscraper source.

        Args:
            api_key: Outscraper API key
            base_url: API base URL
            reviews_limit: Max reviews per venue
            language: Review language
            region: Review region
            timeout_seconds: Timeout for one request
            client: Optional preconfigured httpx client (for testing)
        """
        if not api_key:
            raise ReviewSourceError("Outscraper API key is required")

        self.reviews_limit = reviews_limit
        self.language = language
        self.region = region
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self._client.headers["X-API-KEY"] = api_key

    def close(self) -> None:
        self._client.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    def _get_reviews(self, venue_id: str) -> Any:
        """Call the reviews endpoint with retry logic."""
        response = self._client.get(
            self.REVIEWS_ENDPOINT,
            params={
                "query": venue_id,
                "reviewsLimit": self.reviews_limit,
                "language": self.language,
                "region": self.region,
                "async": "false",
            },
        )
        response.raise_for_status()
        return response.json()

    def fetch_venue(self, venue_id: str) -> VenueFetchResult:
        """Fetch venue metadata and reviews for one Google place id."""
        logger.info(f"Fetching reviews for {venue_id} from Outscraper")
        try:
            payload = self._get_reviews(venue_id)
        except httpx.TimeoutException as e:
            raise ReviewSourceError(f"Timed out fetching {venue_id}: {e}")
        except httpx.HTTPStatusError as e:
            raise ReviewSourceError(
                f"Outscraper API error for {venue_id}: {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            raise ReviewSourceError(f"Failed to fetch {venue_id}: {e}")
        except ValueError as e:
            raise ReviewSourceError(f"Malformed response for {venue_id}: {e}")

        place = first_place(payload)
        if place is None:
            raise ReviewSourceError(f"No place found for {venue_id}")

        result = parse_place(venue_id, place, source="google")
        logger.info(f"Found {len(result.reviews)} reviews for {result.metadata.name}")
        return result

    def get_source_name(self) -> str:
        return "outscraper"


class JSONDirectorySource(ReviewSource):
    """
    Load previously exported reviews-v3 responses from a directory.

    Expects one file per venue named <venue_id>.json.
    """

    def __init__(self, directory: Path, source_name: str = "google"):
        self.directory = Path(directory)
        self.source_name = source_name

    def get_venue_ids(self) -> List[str]:
        """Venue ids available in the directory."""
        return sorted(path.stem for path in self.directory.glob("*.json"))

    def fetch_venue(self, venue_id: str) -> VenueFetchResult:
        path = self.directory / f"{venue_id}.json"
        if not path.exists():
            raise ReviewSourceError(f"No exported response for {venue_id}: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise ReviewSourceError(f"Invalid JSON in {path}: {e}")

        place = first_place(payload)
        if place is None:
            raise ReviewSourceError(f"No place found in {path}")

        result = parse_place(venue_id, place, source=self.source_name)
        logger.debug(f"Loaded {len(result.reviews)} reviews for {venue_id} from {path}")
        return result

    def get_source_name(self) -> str:
        return f"json:{self.directory}"
