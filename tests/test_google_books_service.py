import asyncio

import httpx
import pytest

from catalog.errors import ExternalServiceError
from catalog.services.google_books_service import GoogleBooksService, RateLimitExceeded

AZKABAN_RESPONSE = {
    "totalItems": 1,
    "items": [{
        "volumeInfo": {
            "title": "Harry Potter and the Prisoner of Azkaban",
            "authors": ["J. K. Rowling", "Kazu Kibuishi"],
            "categories": ["Juvenile Fiction"],
            "publishedDate": "2013-08-27",
            "language": "en",
            "industryIdentifiers": [
                {"type": "OTHER", "identifier": "UOM:39015061239466"},
                {"type": "ISBN_13", "identifier": "9780545582933"},
                {"type": "ISBN_10", "identifier": "0545582938"},
            ],
        }
    }],
}


class FakeHTTPClient:
    """get_with_retry çağrılarını kaydeden ve hazır yanıt döndüren istemci."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def get_with_retry(self, url, params=None, **kwargs):
        self.calls.append((url, dict(params or {})))
        if self.error:
            raise self.error
        return self.response


def fetch(service, isbn):
    return asyncio.run(service.fetch_volume_by_isbn(isbn))


def test_fetch_volume_by_isbn_parses_metadata():
    client = FakeHTTPClient(httpx.Response(200, json=AZKABAN_RESPONSE))
    service = GoogleBooksService(api_key="k", http_client=client)

    metadata = fetch(service, "978-0-545-58293-3")
    assert metadata.title == "Harry Potter and the Prisoner of Azkaban"
    assert metadata.authors == ["J. K. Rowling", "Kazu Kibuishi"]
    assert metadata.categories == ["Juvenile Fiction"]
    assert metadata.published_date == "2013-08-27"
    assert metadata.isbn10 == "0545582938"
    assert metadata.isbn13 == "9780545582933"

    url, params = client.calls[0]
    assert url.endswith("/volumes")
    assert params == {"q": "isbn:9780545582933", "maxResults": 1, "key": "k"}


def test_missing_fields_default_to_empty():
    body = {"totalItems": 1, "items": [{"volumeInfo": {"title": "Bare"}}]}
    service = GoogleBooksService(http_client=FakeHTTPClient(httpx.Response(200, json=body)))
    metadata = fetch(service, "9780134686097")
    assert metadata.authors == []
    assert metadata.categories == []
    assert metadata.isbn10 is None and metadata.isbn13 is None


def test_no_items_returns_none():
    service = GoogleBooksService(http_client=FakeHTTPClient(httpx.Response(200, json={"totalItems": 0})))
    assert fetch(service, "9780134686097") is None


def test_item_without_title_returns_none():
    body = {"totalItems": 1, "items": [{"volumeInfo": {"authors": ["Someone"]}}]}
    service = GoogleBooksService(http_client=FakeHTTPClient(httpx.Response(200, json=body)))
    assert fetch(service, "9780134686097") is None


def test_empty_isbn_skips_request():
    client = FakeHTTPClient(httpx.Response(200, json=AZKABAN_RESPONSE))
    service = GoogleBooksService(http_client=client)
    assert fetch(service, "  ") is None
    assert client.calls == []


def test_server_error_returns_none():
    service = GoogleBooksService(http_client=FakeHTTPClient(httpx.Response(503, text="unavailable")))
    assert fetch(service, "9780134686097") is None


def test_rate_limit_raises():
    service = GoogleBooksService(http_client=FakeHTTPClient(httpx.Response(429)))
    with pytest.raises(RateLimitExceeded):
        fetch(service, "9780134686097")


def test_network_error_becomes_external_service_error():
    client = FakeHTTPClient(error=httpx.ConnectError("connection refused"))
    service = GoogleBooksService(http_client=client)
    with pytest.raises(ExternalServiceError):
        fetch(service, "9780134686097")


def test_shared_client_is_looked_up_per_request(monkeypatch):
    import catalog.services.google_books_service as gbs

    clients = [
        FakeHTTPClient(httpx.Response(200, json=AZKABAN_RESPONSE)),
        FakeHTTPClient(httpx.Response(200, json=AZKABAN_RESPONSE)),
    ]
    handed_out = iter(clients)

    async def fake_get_http_client():
        return next(handed_out)

    monkeypatch.setattr(gbs, "get_http_client", fake_get_http_client)
    service = GoogleBooksService()

    # Paylaşılan istemci iki istek arasında kapatılıp yeniden oluşturulmuş gibi
    assert fetch(service, "9780545582933") is not None
    assert fetch(service, "9780545582933") is not None
    assert len(clients[0].calls) == 1
    assert len(clients[1].calls) == 1
