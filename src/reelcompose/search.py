"""Video search index — find labelled moments in a product's source video.

Two sources:
  - TwelveLabsClient: hosted semantic search over an indexed video.
  - create_placeholder_index(): a fixed five-segment index used when no
    hosted index exists, so label search still has something to match.
"""

import hashlib
import logging

import requests

from .manifest import VideoIndex, VideoSegment

logger = logging.getLogger(__name__)


TWELVELABS_API_URL = "https://api.twelvelabs.io/v1.2"

REQUEST_TIMEOUT = 30

# (label, start fraction, end fraction, confidence) over the video duration.
PLACEHOLDER_SEGMENTS = [
    ("Product Close-up", 0.0, 1 / 6, 0.95),
    ("Unboxing", 1 / 6, 0.4, 0.88),
    ("Human Interaction", 0.4, 2 / 3, 0.92),
    ("Wide Shot", 2 / 3, 5 / 6, 0.85),
    ("Product in Use", 5 / 6, 1.0, 0.90),
]


def create_placeholder_index(video_url: str, duration: float = 30.0) -> VideoIndex:
    """Build a deterministic placeholder index for a source video."""
    digest = hashlib.sha256(video_url.encode("utf-8")).hexdigest()[:12]
    segments = tuple(
        VideoSegment(
            label=label,
            start_time=round(start * duration, 3),
            end_time=round(end * duration, 3),
            confidence=confidence,
        )
        for label, start, end, confidence in PLACEHOLDER_SEGMENTS
    )
    return VideoIndex(
        video_id=f"mock_{digest}",
        video_url=video_url,
        duration=duration,
        segments=segments,
        indexed=True,
    )


class TwelveLabsClient:
    """Hosted video search. Failures are logged and reported as no match."""

    def __init__(self, api_key: str, index_id: str, session: requests.Session | None = None):
        self.api_key = api_key
        self.index_id = index_id
        self.session = session or requests.Session()

    def search_segments(self, video_id: str, query: str) -> list[VideoSegment]:
        """All matching segments for query, labelled with the query text.

        Raises:
            requests.RequestException: Network or HTTP failure.
        """
        response = self.session.post(
            f"{TWELVELABS_API_URL}/search",
            headers={"x-api-key": self.api_key},
            json={
                "index_id": self.index_id,
                "query": query,
                "search_options": ["visual", "conversation", "text_in_video"],
                "filter": {"id": [video_id]},
            },
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return [
            VideoSegment(
                label=query,
                start_time=float(item["start"]),
                end_time=float(item["end"]),
                confidence=float(item.get("confidence") or 0.0),
                thumbnail_url=item.get("thumbnail_url"),
            )
            for item in response.json().get("data", [])
        ]

    def search(self, video_id: str, query: str) -> VideoSegment | None:
        """Highest-confidence segment for query, or None."""
        if video_id.startswith("mock_"):
            return None
        try:
            segments = self.search_segments(video_id, query)
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.warning("Video search failed for %r: %s", query, e)
            return None
        if not segments:
            return None
        return max(segments, key=lambda s: s.confidence or 0.0)
