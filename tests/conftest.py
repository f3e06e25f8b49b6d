from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from listing_hunter.config import HuntConfig
from listing_hunter.models import ListingRecord


class InMemoryStore:
    def __init__(self) -> None:
        self.rows: Dict[str, ListingRecord] = {}
        self.inserts: List[str] = []

    def exists(self, external_id: str) -> bool:
        return external_id in self.rows

    def insert(self, listing: ListingRecord) -> bool:
        self.inserts.append(listing.external_id)
        if listing.external_id in self.rows:
            return False
        self.rows[listing.external_id] = listing
        return True


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.sent: List[ListingRecord] = []
        self.fail = fail

    def send(self, listing: ListingRecord) -> bool:
        self.sent.append(listing)
        return not self.fail


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", json_body: Optional[object] = None) -> None:
        self.status_code = status_code
        self.text = text
        self._json = json_body

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> object:
        if self._json is None:
            raise ValueError("no json")
        return self._json


class FakeSession:
    """Returns canned responses keyed by URL and records every call."""

    def __init__(self, responses: Dict[str, object]) -> None:
        self.responses = responses
        self.calls: List[dict] = []
        self.closed = False

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def _respond(self, method: str, url: str, **kwargs: object) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        resp = self.responses.get(url, FakeResponse(404))
        if isinstance(resp, Exception):
            raise resp
        return resp  # type: ignore[return-value]

    def get(self, url: str, **kwargs: object) -> FakeResponse:
        return self._respond("GET", url, **kwargs)

    def post(self, url: str, **kwargs: object) -> FakeResponse:
        return self._respond("POST", url, **kwargs)


@pytest.fixture
def config() -> HuntConfig:
    return HuntConfig(
        telegram_bot_token="test-token",
        telegram_chat_id="42",
        db_url="postgresql://test/test",
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
