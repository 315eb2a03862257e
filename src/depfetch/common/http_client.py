"""Shared HTTP helpers used by remote repository clients.

Encapsulates retry, timeout and response caching so repository modules avoid
duplicating try/except blocks. Failures never raise: callers receive status 0
and decide whether that means "repository unavailable".
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from depfetch.constants import Constants
from depfetch.common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


# Simple in-memory cache for HTTP responses
_http_cache: Dict[str, Tuple[Any, float]] = {}


def _get_cache_key(method: str, url: str, headers: Optional[Dict[str, str]] = None) -> str:
    """Generate cache key from request parameters."""
    headers_str = str(sorted(headers.items())) if headers else ""
    return f"{method}:{url}:{headers_str}"


def _is_cache_valid(cache_entry: Tuple[Any, float]) -> bool:
    """Check if cache entry is still valid."""
    _, cached_time = cache_entry
    return time.time() - cached_time < Constants.HTTP_CACHE_TTL_SEC


def clear_cache() -> None:
    """Drop every cached response."""
    _http_cache.clear()


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    cache: bool = True,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], bytes]:
    """Perform GET request with timeout, retries, and caching with DEBUG traces.

    Args:
        url: Target URL.
        headers: Optional request headers.
        cache: Whether a successful response may be served from/stored in the cache.
        **kwargs: Additional requests.get parameters.

    Returns:
        Tuple of (status_code, headers_dict, body_bytes). status_code is 0 when
        every attempt failed at the transport level.
    """
    cache_key = _get_cache_key('GET', url, headers)
    safe_target = safe_url(url)

    if cache and cache_key in _http_cache and _is_cache_valid(_http_cache[cache_key]):
        cached_data, _ = _http_cache[cache_key]
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP cache hit",
                extra=extra_context(
                    event="cache_hit",
                    component="http_client",
                    action="GET",
                    target=safe_target
                )
            )
        return cached_data

    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )

                if response.status_code >= 500:
                    last_exception = f"server error {response.status_code}"
                    continue

                result = (response.status_code, dict(response.headers), response.content)
                if cache:
                    _http_cache[cache_key] = (result, time.time())

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response ok",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            outcome="success",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                return result

            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

    logger.warning(
        "GET %s failed after %s attempts: %s",
        safe_target,
        Constants.HTTP_RETRY_MAX,
        last_exception,
    )
    return 0, {}, b""


def robust_head(url: str, *, headers: Optional[Dict[str, str]] = None) -> int:
    """Perform a HEAD request with retries.

    Returns:
        The final status code, or 0 if every attempt failed.
    """
    safe_target = safe_url(url)
    for attempt in range(Constants.HTTP_RETRY_MAX):
        try:
            response = requests.head(
                url,
                timeout=Constants.REQUEST_TIMEOUT,
                headers=headers,
                allow_redirects=True,
            )
            if response.status_code >= 500:
                continue
            return response.status_code
        except requests.RequestException as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP HEAD exception",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action="HEAD",
                        outcome=str(exc),
                        attempt=attempt + 1,
                        target=safe_target
                    )
                )
    return 0
