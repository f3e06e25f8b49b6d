from __future__ import annotations

import requests

from listing_hunter.config import HuntConfig
from listing_hunter.services import fetcher
from listing_hunter.services.fetcher import fallback_urls, fetch_search_page

from conftest import FakeResponse, FakeSession


SEARCH = "https://ingatlan.com/szukites/elado+lakas+budapest+maganszemely"
JINA_HTTP = "https://r.jina.ai/http://ingatlan.com/szukites/elado+lakas+budapest+maganszemely"
JINA_HTTPS = "https://r.jina.ai/https://ingatlan.com/szukites/elado+lakas+budapest+maganszemely"


def test_fallback_urls_strip_scheme():
    assert fallback_urls(HuntConfig()) == [JINA_HTTP, JINA_HTTPS]


def test_direct_success_sends_browser_headers():
    session = FakeSession({SEARCH: FakeResponse(200, "<html>ok</html>")})
    result = fetch_search_page(HuntConfig(request_timeout=5), session=session)

    assert result.ok
    assert result.source == "direct"
    assert result.content == "<html>ok</html>"
    assert len(session.calls) == 1
    call = session.calls[0]
    assert call["timeout"] == 5
    assert set(call["headers"]) == {"User-Agent", "Accept", "Accept-Language", "Referer", "Cache-Control"}
    assert call["headers"]["Referer"] == "https://ingatlan.com/"


def test_non_forbidden_failure_skips_fallback():
    session = FakeSession({SEARCH: FakeResponse(500)})
    result = fetch_search_page(HuntConfig(), session=session)

    assert not result.ok
    assert result.status == 500
    assert [c["url"] for c in session.calls] == [SEARCH]


def test_forbidden_tries_fallbacks_in_order():
    session = FakeSession(
        {
            SEARCH: FakeResponse(403),
            JINA_HTTP: FakeResponse(200, "   "),
            JINA_HTTPS: FakeResponse(200, "https://ingatlan.com/67890"),
        }
    )
    result = fetch_search_page(HuntConfig(), session=session)

    assert result.ok
    assert result.source == "fallback"
    assert result.content == "https://ingatlan.com/67890"
    assert [c["url"] for c in session.calls] == [SEARCH, JINA_HTTP, JINA_HTTPS]


def test_forbidden_with_all_fallbacks_failing_keeps_original_status():
    session = FakeSession(
        {
            SEARCH: FakeResponse(403),
            JINA_HTTP: FakeResponse(429),
            JINA_HTTPS: requests.ConnectionError("boom"),
        }
    )
    result = fetch_search_page(HuntConfig(), session=session)

    assert not result.ok
    assert result.status == 403
    assert result.source == "fallback"


def test_network_error_on_direct_fetch():
    session = FakeSession({SEARCH: requests.Timeout("slow")})
    result = fetch_search_page(HuntConfig(), session=session)

    assert not result.ok
    assert result.status == 502
    assert len(session.calls) == 1


def test_empty_direct_body_is_not_ok():
    session = FakeSession({SEARCH: FakeResponse(200, "")})
    result = fetch_search_page(HuntConfig(), session=session)

    assert not result.ok
    assert result.source == "direct"
    assert len(session.calls) == 1


def test_redirect_status_is_failure_without_fallback():
    session = FakeSession({SEARCH: FakeResponse(304, "<html>cached</html>")})
    result = fetch_search_page(HuntConfig(), session=session)

    assert not result.ok
    assert result.status == 304
    assert [c["url"] for c in session.calls] == [SEARCH]


def test_fallback_with_3xx_is_skipped():
    session = FakeSession(
        {
            SEARCH: FakeResponse(403),
            JINA_HTTP: FakeResponse(302, "moved"),
            JINA_HTTPS: FakeResponse(200, "https://ingatlan.com/1"),
        }
    )
    result = fetch_search_page(HuntConfig(), session=session)

    assert result.content == "https://ingatlan.com/1"


def test_owned_session_is_closed(monkeypatch):
    created = []

    def make_session():
        session = FakeSession({SEARCH: FakeResponse(200, "<html>ok</html>")})
        created.append(session)
        return session

    monkeypatch.setattr(fetcher.requests, "Session", make_session)

    assert fetch_search_page(HuntConfig()).ok
    assert len(created) == 1
    assert created[0].closed


def test_passed_session_is_left_open():
    session = FakeSession({SEARCH: FakeResponse(200, "<html>ok</html>")})
    fetch_search_page(HuntConfig(), session=session)
    assert not session.closed
