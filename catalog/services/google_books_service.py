import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

import httpx

from config import settings
from catalog.errors import ExternalServiceError
from catalog.isbn import ISBNValidator
from catalog.services.http_client import OptimizedHTTPClient, get_http_client


logger = logging.getLogger(__name__)


@dataclass
class VolumeMetadata:
    """Data structure for a Google Books volume, reduced to what the catalog stores"""
    title: str
    authors: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    published_date: Optional[str] = None
    language: Optional[str] = None
    isbn10: Optional[str] = None
    isbn13: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "authors": self.authors,
            "categories": self.categories,
            "published_date": self.published_date,
            "language": self.language,
            "isbn10": self.isbn10,
            "isbn13": self.isbn13,
        }


class RateLimitExceeded(ExternalServiceError):
    """Exception raised when rate limit is exceeded"""
    pass


class GoogleBooksService:
    """Service for looking up volume metadata in the Google Books API"""

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[OptimizedHTTPClient] = None):
        self.api_key = api_key or settings.google_books_api_key
        self.base_url = "https://www.googleapis.com/books/v1"
        self.timeout = settings.google_books_timeout
        self._http_client = http_client

    async def _client(self) -> OptimizedHTTPClient:
        # Paylaşılan istemci kapatılıp yeniden oluşturulabilir; saklanmaz
        if self._http_client is not None:
            return self._http_client
        return await get_http_client()

    async def _make_api_request(self, endpoint: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Make an API request to Google Books"""
        url = f"{self.base_url}/{endpoint}"

        if self.api_key:
            params["key"] = self.api_key

        start_time = time.time()
        client = await self._client()
        try:
            response = await client.get_with_retry(url, params=params, timeout=self.timeout)
        except httpx.RequestError as e:
            logger.error(f"Google Books request failed: {e}")
            raise ExternalServiceError("Google Books'a ulaşılamıyor") from e

        response_time_ms = int((time.time() - start_time) * 1000)
        if response.status_code == 200:
            logger.info(f"Google Books request ok: endpoint={endpoint}, {response_time_ms}ms")
            return response.json()
        if response.status_code == 429:
            logger.warning("Rate limit exceeded for Google Books API")
            raise RateLimitExceeded("Rate limit exceeded")
        logger.error(f"API request failed: {response.status_code} - {response.text}")
        return None

    @staticmethod
    def _parse_identifiers(identifiers: List[Dict[str, Any]]) -> Dict[str, Optional[str]]:
        """Pick ISBN-10 / ISBN-13 from industryIdentifiers by identifier length."""
        found: Dict[str, Optional[str]] = {"isbn10": None, "isbn13": None}
        for identifier in identifiers or []:
            # OTHER identifiers (e.g. "UOM:39015...") are not ISBNs
            if not str(identifier.get("type", "")).startswith("ISBN"):
                continue
            value = ISBNValidator.normalize_isbn(identifier.get("identifier", ""))
            if len(value) == 10 and not found["isbn10"]:
                found["isbn10"] = value
            elif len(value) == 13 and not found["isbn13"]:
                found["isbn13"] = value
        return found

    def _parse_volume_info(self, volume_data: Dict[str, Any]) -> Optional[VolumeMetadata]:
        """Parse volume info from Google Books API response"""
        volume_info = volume_data.get("volumeInfo", {})
        title = volume_info.get("title")
        if not title:
            return None
        identifiers = self._parse_identifiers(volume_info.get("industryIdentifiers", []))
        return VolumeMetadata(
            title=title,
            authors=list(volume_info.get("authors", [])),
            categories=list(volume_info.get("categories", [])),
            published_date=volume_info.get("publishedDate"),
            language=volume_info.get("language"),
            isbn10=identifiers["isbn10"],
            isbn13=identifiers["isbn13"],
        )

    async def fetch_volume_by_isbn(self, isbn: str) -> Optional[VolumeMetadata]:
        """
        Fetch volume metadata by ISBN from Google Books API

        Args:
            isbn: Book ISBN (10 or 13 digits)

        Returns:
            VolumeMetadata or None if not found

        Raises:
            ExternalServiceError: the API could not be reached
        """
        clean_isbn = ISBNValidator.normalize_isbn(isbn)
        if not clean_isbn:
            logger.warning("Empty ISBN provided")
            return None

        params = {
            "q": f"isbn:{clean_isbn}",
            "maxResults": 1
        }
        response = await self._make_api_request("volumes", params)

        if response and response.get("totalItems", 0) > 0:
            items = response.get("items", [])
            if items:
                metadata = self._parse_volume_info(items[0])
                if metadata:
                    logger.info(f"Book found via Google Books: {metadata.title} by {', '.join(metadata.authors)}")
                    return metadata

        logger.info(f"Book not found in Google Books: ISBN {clean_isbn}")
        return None
