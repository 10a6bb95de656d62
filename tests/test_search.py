"""Tests for the video search index."""

import requests

from reelcompose.search import (
    TWELVELABS_API_URL,
    TwelveLabsClient,
    create_placeholder_index,
)

from conftest import FakeResponse, FakeSession

SEARCH_URL = f"{TWELVELABS_API_URL}/search"


class TestPlaceholderIndex:
    def test_five_segments_spanning_duration(self):
        index = create_placeholder_index("https://cdn.shop.test/p.mp4", duration=60.0)
        assert [s.label for s in index.segments] == [
            "Product Close-up", "Unboxing", "Human Interaction", "Wide Shot", "Product in Use",
        ]
        assert index.segments[0].start_time == 0.0
        assert index.segments[-1].end_time == 60.0

    def test_deterministic_id(self):
        a = create_placeholder_index("https://cdn.shop.test/p.mp4")
        b = create_placeholder_index("https://cdn.shop.test/p.mp4")
        c = create_placeholder_index("https://cdn.shop.test/q.mp4")
        assert a == b
        assert a.video_id.startswith("mock_")
        assert a.video_id != c.video_id


class TestTwelveLabsClient:
    def test_best_segment(self):
        session = FakeSession({SEARCH_URL: FakeResponse(json_data={"data": [
            {"start": 1, "end": 3, "confidence": 0.4},
            {"start": 5, "end": 8, "confidence": 0.9, "thumbnail_url": "https://t/1.jpg"},
        ]})})
        segment = TwelveLabsClient("key", "idx", session=session).search("vid1", "unboxing")
        assert (segment.start_time, segment.end_time) == (5.0, 8.0)
        assert segment.label == "unboxing"
        assert segment.thumbnail_url == "https://t/1.jpg"
        body = session.calls[0][2]["json"]
        assert body["index_id"] == "idx"
        assert body["filter"] == {"id": ["vid1"]}

    def test_no_results(self):
        session = FakeSession({SEARCH_URL: FakeResponse(json_data={"data": []})})
        assert TwelveLabsClient("key", "idx", session=session).search("vid1", "x") is None

    def test_placeholder_ids_skip_network(self):
        session = FakeSession()
        assert TwelveLabsClient("key", "idx", session=session).search("mock_abc", "x") is None
        assert session.calls == []

    def test_failure_is_no_match(self):
        session = FakeSession(error=requests.ConnectionError("down"))
        assert TwelveLabsClient("key", "idx", session=session).search("vid1", "x") is None
