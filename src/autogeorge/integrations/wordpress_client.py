"""WordPress REST API client with retry and circuit breaker."""

from typing import Any, Dict, List, Optional

import httpx
import pybreaker
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from autogeorge.core.site import WordPressSite
from autogeorge.utils.exceptions import WordPressError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

# Shared across clients: a WordPress host that keeps failing is left alone
# for a minute instead of being hammered by every article in the batch.
wordpress_breaker = pybreaker.CircuitBreaker(
    fail_max=5,
    reset_timeout=60,
    name="wordpress_api",
)


class WordPressServerError(WordPressError):
    """5xx from WordPress; retried and counted by the breaker."""


def _raise_transport(exc: Exception) -> None:
    raise exc


def _check_server_error(response: httpx.Response) -> httpx.Response:
    if response.status_code >= 500:
        raise WordPressServerError(
            f"WordPress server error {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )
    return response


class WordPressClient:
    """Async client for the WordPress REST API (wp/v2) using Basic auth.

    Use as async context manager:
        async with WordPressClient(site) as wp:
            post = await wp.create_post(...)
    """

    def __init__(
        self,
        site: WordPressSite,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            site: Target site with URL and credentials.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self.site = site
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "WordPressClient":
        self._client = httpx.AsyncClient(
            base_url=self.site.api_base,
            auth=httpx.BasicAuth(self.site.username, self.site.password),
            timeout=self.timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.TransportError, WordPressServerError)),
        reraise=True,
    )
    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request through the circuit breaker.

        Raises:
            WordPressError: On 4xx responses or when the breaker is open.
            WordPressServerError: On 5xx responses (after retries).
            httpx.TransportError: On network failures (after retries).
        """
        if self._client is None:
            raise RuntimeError("Client not initialized. Use async context manager.")

        try:
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.TransportError as exc:
                wordpress_breaker.call(_raise_transport, exc)
                raise
            response = wordpress_breaker.call(_check_server_error, response)
        except pybreaker.CircuitBreakerError as e:
            logger.warning("wordpress_circuit_open", site=self.site.url)
            raise WordPressError(f"WordPress circuit open for {self.site.url}: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                "wordpress_request_rejected",
                method=method,
                path=path,
                status=response.status_code,
            )
            raise WordPressError(
                f"WordPress error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    async def create_post(
        self,
        title: str,
        content: str,
        status: str = "publish",
        categories: Optional[List[int]] = None,
        tags: Optional[List[int]] = None,
        excerpt: Optional[str] = None,
        featured_media: Optional[int] = None,
        author: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Create a post.

        Returns:
            Dict with 'id', 'link' and 'status' of the created post.
        """
        payload: Dict[str, Any] = {"title": title, "content": content, "status": status}
        if categories:
            payload["categories"] = categories
        if tags:
            payload["tags"] = tags
        if excerpt:
            payload["excerpt"] = excerpt
        if featured_media:
            payload["featured_media"] = featured_media
        if author:
            payload["author"] = author

        response = await self._request("POST", "/posts", json=payload)
        post = response.json()
        logger.info("wordpress_post_created", site=self.site.url, post_id=post.get("id"))
        return {"id": post.get("id"), "link": post.get("link"), "status": post.get("status")}

    async def upload_media(
        self, data: bytes, filename: str, content_type: str = "image/png"
    ) -> Dict[str, Any]:
        """Upload raw image bytes to the media library.

        Returns:
            Dict with 'id' and 'source_url' of the media item.
        """
        response = await self._request(
            "POST",
            "/media",
            content=data,
            headers={
                "Content-Type": content_type,
                "Content-Disposition": f'attachment; filename="{filename}"',
            },
        )
        media = response.json()
        logger.info("wordpress_media_uploaded", site=self.site.url, media_id=media.get("id"))
        return {"id": media.get("id"), "source_url": media.get("source_url")}

    async def upload_media_from_url(self, image_url: str, filename: str) -> Dict[str, Any]:
        """Download an image and upload it to the media library.

        The image host gets its own client: the site credentials only go to
        the site.
        """
        if self._client is None:
            raise RuntimeError("Client not initialized. Use async context manager.")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as downloader:
                download = await downloader.get(image_url)
            download.raise_for_status()
        except httpx.HTTPError as e:
            raise WordPressError(f"Failed to download image {image_url}: {e}") from e

        content_type = download.headers.get("Content-Type", "image/png").split(";")[0]
        return await self.upload_media(download.content, filename, content_type)

    async def list_categories(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/categories", params={"per_page": 100})
        return [
            {
                "id": c.get("id"),
                "name": c.get("name"),
                "slug": c.get("slug"),
                "parent": c.get("parent"),
                "count": c.get("count"),
                "description": c.get("description"),
            }
            for c in response.json()
        ]

    async def list_tags(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/tags", params={"per_page": 100})
        return [
            {"id": t.get("id"), "name": t.get("name"), "slug": t.get("slug"), "count": t.get("count")}
            for t in response.json()
        ]

    async def list_users(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/users", params={"per_page": 100})
        return [
            {
                "id": u.get("id"),
                "name": u.get("name"),
                "slug": u.get("slug"),
                "email": u.get("email"),
                "roles": u.get("roles"),
            }
            for u in response.json()
        ]

    async def list_media(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/media", params={"per_page": 50})
        return [
            {
                "id": m.get("id"),
                "title": (m.get("title") or {}).get("rendered"),
                "url": m.get("source_url"),
                "alt_text": m.get("alt_text"),
                "media_type": m.get("media_type"),
                "mime_type": m.get("mime_type"),
            }
            for m in response.json()
        ]

    async def list_posts(self, page: int = 1, per_page: int = 10) -> List[Dict[str, Any]]:
        response = await self._request(
            "GET", "/posts", params={"page": page, "per_page": per_page}
        )
        return [
            {
                "id": p.get("id"),
                "title": (p.get("title") or {}).get("rendered"),
                "status": p.get("status"),
                "date": p.get("date"),
                "modified": p.get("modified"),
                "slug": p.get("slug"),
                "link": p.get("link"),
                "author": p.get("author"),
                "categories": p.get("categories"),
                "tags": p.get("tags"),
            }
            for p in response.json()
        ]

    async def test_connection(self) -> bool:
        """Check credentials by reading the authenticated user."""
        try:
            await self._request("GET", "/users/me")
            return True
        except (WordPressError, httpx.HTTPError) as e:
            logger.warning("wordpress_connection_test_failed", site=self.site.url, error=str(e))
            return False
