"""Cache-aside HTTP client for the Hacker News item and search APIs."""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx
import structlog
from pydantic import ValidationError

from ..config import IngestionConfig
from ..errors import InternalError, NotFoundError
from ..infra import Cache
from ..models import SourcePost

HIRING_QUERY = "Ask HN: Who is hiring?"
HIRING_TAGS = "story,author_whoishiring"
SECONDS_PER_DAY = 86400


def item_cache_key(item_id: int) -> str:
    return f"item:{item_id}"


def search_cache_key(threshold: int) -> str:
    return f"search:{threshold}"


class JobSourceClient(ABC):
    """Read-only view of the upstream content API used by the pipeline."""

    @abstractmethod
    def get_item(self, item_id: int) -> SourcePost:
        """Fetch a single story or comment."""

    @abstractmethod
    def get_top_stories(self) -> list[int]:
        """Return the current front-page story ids in rank order."""

    @abstractmethod
    def search_hiring_threads(self) -> list[int]:
        """Return ids of recent ``whoishiring`` stories."""

    def close(self) -> None:
        """Release network resources."""


class CachingSourceClient(JobSourceClient):
    """Fetch items through the cache first and fall back to the live API.

    Cache failures never fail a call: every cache error is logged and treated
    as a miss, and write-back after a successful fetch is best-effort.
    """

    def __init__(
        self,
        config: IngestionConfig,
        cache: Cache,
        logger: structlog.BoundLogger | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.api = config.source_api
        self.cache = cache
        self.cache_ttl = config.cache.ttl
        self.logger = logger or structlog.get_logger("hn_ingest").bind(component="source_client")
        self._clock = clock
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=self.api.timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def __enter__(self) -> "CachingSourceClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    def get_item(self, item_id: int) -> SourcePost:
        key = item_cache_key(item_id)
        cached = self._cache_get(key)
        if cached is not None:
            try:
                post = SourcePost.model_validate_json(cached)
            except ValidationError as exc:
                self.logger.warning("cache_decode_failed", key=key, error=str(exc))
            else:
                self.logger.debug("cache_hit", id=item_id)
                return post

        url = f"{self.api.base_url}/item/{item_id}.json"
        self.logger.debug("cache_miss_fetching_item", id=item_id, url=url)
        response = self._get(url)
        if response.status_code == httpx.codes.NOT_FOUND:
            self.logger.warning("item_not_found", id=item_id)
            raise NotFoundError("item not found", id=item_id)
        self._ensure_ok(response, id=item_id)
        payload = self._decode(response, id=item_id)
        if payload is None:
            # the API answers unknown ids with a literal null body
            self.logger.warning("item_not_found", id=item_id)
            raise NotFoundError("item not found", id=item_id)
        try:
            post = SourcePost.model_validate(payload)
        except ValidationError as exc:
            self.logger.error("item_decode_failed", id=item_id, error=str(exc))
            raise InternalError("decoding response", exc, id=item_id) from exc

        self.logger.debug("item_fetched", id=item_id, title=post.title)
        self._cache_set(key, post.model_dump_json().encode("utf-8"))
        return post

    def get_top_stories(self) -> list[int]:
        url = f"{self.api.base_url}/topstories.json"
        self.logger.debug("fetching_top_stories", url=url)
        response = self._get(url)
        self._ensure_ok(response)
        payload = self._decode(response)
        if not isinstance(payload, list):
            raise InternalError("decoding response", url=url)
        try:
            ids = [int(value) for value in payload]
        except (TypeError, ValueError) as exc:
            raise InternalError("decoding response", exc, url=url) from exc
        self.logger.debug("top_stories_fetched", count=len(ids))
        return ids

    def search_hiring_threads(self) -> list[int]:
        threshold = self.search_threshold()
        key = search_cache_key(threshold)
        cached = self._cache_get(key)
        if cached is not None:
            try:
                ids = [int(value) for value in json.loads(cached)]
            except (TypeError, ValueError) as exc:
                self.logger.warning("cache_decode_failed", key=key, error=str(exc))
            else:
                self.logger.debug("cache_hit_hiring_search", count=len(ids))
                return ids

        url = f"{self.api.search_base_url}/search"
        params = {
            "tags": HIRING_TAGS,
            "query": HIRING_QUERY,
            "numericFilters": f"created_at_i>{threshold}",
        }
        self.logger.debug("cache_miss_searching_hiring_threads", url=url, threshold=threshold)
        response = self._get(url, params=params)
        self._ensure_ok(response)
        payload = self._decode(response)
        if not isinstance(payload, dict):
            raise InternalError("decoding response", url=url)
        hits = payload.get("hits") or []
        self.logger.info("search_response_stats", total_hits=payload.get("nbHits", 0))

        ids: list[int] = []
        for hit in hits:
            object_id = hit.get("objectID") if isinstance(hit, dict) else None
            try:
                ids.append(int(str(object_id)))
            except (TypeError, ValueError):
                self.logger.warning(
                    "invalid_story_id",
                    id=object_id,
                    title=hit.get("title") if isinstance(hit, dict) else None,
                    author=hit.get("author") if isinstance(hit, dict) else None,
                )
        self.logger.debug("hiring_threads_fetched", count=len(ids))
        self._cache_set(key, json.dumps(ids).encode("utf-8"))
        return ids

    def search_threshold(self) -> int:
        """Unix time before which hiring threads are ignored."""

        return int(self._clock()) - self.api.search_window_days * SECONDS_PER_DAY

    # ------------------------------------------------------------------
    def _get(self, url: str, params: dict[str, str] | None = None) -> httpx.Response:
        try:
            return self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            self.logger.error("request_failed", url=url, error=str(exc))
            raise InternalError("executing request", exc, url=url) from exc

    def _ensure_ok(self, response: httpx.Response, **context: Any) -> None:
        if response.status_code != httpx.codes.OK:
            self.logger.error("unexpected_status_code", status_code=response.status_code, **context)
            raise InternalError(
                f"unexpected status code: {response.status_code}",
                status_code=response.status_code,
                **context,
            )

    def _decode(self, response: httpx.Response, **context: Any) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self.logger.error("response_decode_failed", error=str(exc), **context)
            raise InternalError("decoding response", exc, **context) from exc

    def _cache_get(self, key: str) -> bytes | None:
        try:
            return self.cache.get(key)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("cache_error", key=key, error=str(exc))
            return None

    def _cache_set(self, key: str, value: bytes) -> None:
        try:
            self.cache.set(key, value, self.cache_ttl)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("cache_write_failed", key=key, error=str(exc))


__all__ = [
    "CachingSourceClient",
    "HIRING_QUERY",
    "JobSourceClient",
    "item_cache_key",
    "search_cache_key",
]
