"""Helpers for talking to a running NetGraph API over HTTP."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)


class RemoteLayoutError(RuntimeError):
    """Raised when the remote layout endpoint cannot produce a layout."""


@dataclass(frozen=True)
class APIHealthResult:
    """Structured information about an API health probe result."""

    ok: bool
    status_code: Optional[int]
    detail: str
    latency_ms: Optional[float]
    payload: Optional[dict[str, Any]]


def check_api_health(
    base_url: str,
    *,
    timeout: float = 5.0,
    client: Optional[httpx.Client] = None,
) -> APIHealthResult:
    """Ping the API health endpoint and return a structured result.

    Args:
        base_url: Base URL where the API is hosted (e.g. ``"http://localhost:8000"``).
        timeout: Request timeout in seconds when creating an internal client.
        client: Optional pre-configured ``httpx.Client`` (useful for testing).

    Returns:
        APIHealthResult: Whether the API answered, with failure context.
    """

    url = f"{base_url.rstrip('/')}/health"
    should_close = client is None
    session = client or httpx.Client(timeout=timeout)
    start_time = time.monotonic()

    try:
        response = session.get(url)
        latency_ms = (time.monotonic() - start_time) * 1000
        if response.status_code == httpx.codes.OK:
            try:
                payload = response.json()
            except ValueError:
                payload = None
                logger.warning("Health endpoint returned non-JSON payload", extra={"url": url})
            logger.info(
                "API health check succeeded",
                extra={"url": url, "status_code": response.status_code, "latency_ms": latency_ms},
            )
            return APIHealthResult(
                ok=True,
                status_code=response.status_code,
                detail="API health check succeeded",
                latency_ms=latency_ms,
                payload=payload,
            )

        logger.warning(
            "API health check failed with status",
            extra={"url": url, "status_code": response.status_code, "latency_ms": latency_ms},
        )
        return APIHealthResult(
            ok=False,
            status_code=response.status_code,
            detail=f"Health endpoint returned {response.status_code}",
            latency_ms=latency_ms,
            payload=None,
        )
    except httpx.HTTPError as exc:
        latency_ms = (time.monotonic() - start_time) * 1000
        logger.error(
            "API health check request raised an error",
            extra={"url": url, "latency_ms": latency_ms, "error": str(exc)},
        )
        return APIHealthResult(
            ok=False,
            status_code=None,
            detail=f"Request to {url} failed: {exc}",
            latency_ms=latency_ms,
            payload=None,
        )
    finally:
        if should_close:
            session.close()


def request_layout(
    base_url: str,
    rows: Sequence[Sequence[Any]],
    *,
    width: float,
    height: float,
    layout: Optional[Mapping[str, float]] = None,
    max_steps: Optional[int] = None,
    timeout: float = 30.0,
    client: Optional[httpx.Client] = None,
) -> dict[str, Any]:
    """Ask a remote API to lay out ``rows`` and return the layout payload.

    Args:
        base_url: Base URL where the API is hosted.
        rows: Tabular rows in either supported shape.
        width: Viewport width.
        height: Viewport height.
        layout: Optional ``linkDistance``/``chargeStrength`` overrides.
        max_steps: Optional simulation step budget.
        timeout: Request timeout in seconds when creating an internal client.
        client: Optional pre-configured ``httpx.Client``.

    Returns:
        dict[str, Any]: Node positions, edge geometry, and the summary block.

    Raises:
        RemoteLayoutError: If the request fails or the API rejects it.
    """

    url = f"{base_url.rstrip('/')}/api/graph/layout"
    body: dict[str, Any] = {
        "viewport": {"width": width, "height": height},
        "rows": [list(row) for row in rows],
    }
    if layout:
        body["layout"] = dict(layout)
    if max_steps is not None:
        body["max_steps"] = max_steps

    should_close = client is None
    session = client or httpx.Client(timeout=timeout)
    try:
        response = session.post(url, json=body)
    except httpx.HTTPError as exc:
        logger.error("Remote layout request failed", extra={"url": url, "error": str(exc)})
        raise RemoteLayoutError(f"Request to {url} failed: {exc}") from exc
    finally:
        if should_close:
            session.close()

    if response.status_code != httpx.codes.OK:
        logger.warning(
            "Remote layout request rejected",
            extra={"url": url, "status_code": response.status_code},
        )
        raise RemoteLayoutError(f"Layout endpoint returned {response.status_code}: {response.text}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise RemoteLayoutError("Layout endpoint returned non-JSON payload") from exc
    if not isinstance(payload, dict):
        raise RemoteLayoutError("Layout endpoint returned an unexpected payload")
    return payload


__all__ = ["APIHealthResult", "RemoteLayoutError", "check_api_health", "request_layout"]
