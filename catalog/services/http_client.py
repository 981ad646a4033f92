import httpx
import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class OptimizedHTTPClient:
    """Bağlantı havuzu ve yeniden deneme mantığı ile HTTP istemcisi"""

    def __init__(self, timeout: float = 10.0):
        limits = httpx.Limits(
            max_keepalive_connections=20,
            max_connections=100,
            keepalive_expiry=30.0
        )

        self._client = httpx.AsyncClient(
            limits=limits,
            timeout=httpx.Timeout(timeout=timeout, connect=5.0),
            follow_redirects=True,
        )

    async def get(self, url: str, **kwargs) -> httpx.Response:
        """Bağlantı havuzu ile asenkron GET isteği"""
        return await self._client.get(url, **kwargs)

    async def get_with_retry(self, url: str, retries: int = 3, backoff: float = 0.5, **kwargs) -> httpx.Response:
        """Üstel geri çekilme ile GET isteği.

        Son denemede de ağ hatası olursa httpx.RequestError yukarı iletilir.
        """
        for attempt in range(retries):
            try:
                return await self.get(url, **kwargs)
            except httpx.RequestError as e:
                if attempt == retries - 1:
                    raise
                wait_time = backoff * (2 ** attempt)
                logger.debug(f"GET {url} başarısız ({e}); {wait_time:.1f}s sonra yeniden denenecek")
                await asyncio.sleep(wait_time)
        raise httpx.RequestError(f"GET {url}: yeniden deneme yapılmadı")

    async def close(self):
        """HTTP istemcisini kapat"""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# Global HTTP istemci örneği
_global_client: Optional[OptimizedHTTPClient] = None


async def get_http_client() -> OptimizedHTTPClient:
    """Global HTTP istemci örneğini al veya oluştur"""
    global _global_client
    if _global_client is None:
        _global_client = OptimizedHTTPClient()
    return _global_client


async def cleanup_http_client():
    """Global HTTP istemcisini temizle"""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
