"""Client for the fal.ai queue API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from artisan_studio.errors import ErrorKind, GenerationCancelled, RemoteInvocationError
from artisan_studio.logging import get_logger

logger = get_logger(__name__)

_PENDING_STATES = frozenset({"IN_QUEUE", "IN_PROGRESS"})
_CONTENT_POLICY_MARKERS = ("content_policy", "content policy", "nsfw", "safety")


@dataclass(frozen=True)
class QueueHandle:
    """URLs of one queued fal request."""

    request_id: str
    status_url: str
    response_url: str
    cancel_url: str


class FalClient:
    """Client for running fal models through the queue API.

    Submits a request, polls its status until completion, then fetches the
    result. One instance is shared by all runs; it holds no per-run state.
    """

    def __init__(
        self,
        api_key: str | None,
        queue_url: str = "https://queue.fal.run",
        poll_interval: float = 1.0,
        timeout: float = 900.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the fal client.

        Args:
            api_key: fal API key.
            queue_url: Base URL of the queue API.
            poll_interval: Seconds between status polls.
            timeout: Overall deadline for one subscribe call, in seconds.
            http_client: Optional preconfigured client (tests inject a
                MockTransport here).
        """
        self.queue_url = queue_url.rstrip("/")
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(60.0))
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Key {api_key}"

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def subscribe(
        self,
        model_id: str,
        input: dict[str, Any],
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """Run a model and wait for its result.

        Args:
            model_id: fal model identifier, e.g. "fal-ai/imagen4/preview".
            input: Model input payload.
            cancel_event: Optional signal; when set, waiting stops, the queued
                request is cancelled and GenerationCancelled is raised.

        Returns:
            The decoded model result.

        Raises:
            RemoteInvocationError: If the call fails, tagged with its ErrorKind.
            GenerationCancelled: If cancel_event fires first.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled(model_id)

        if cancel_event is None:
            return await self._run_with_deadline(model_id, input)

        run = asyncio.ensure_future(self._run_with_deadline(model_id, input))
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {run, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            run.cancel()
            cancelled.cancel()
            raise

        if run in done:
            cancelled.cancel()
            return run.result()

        run.cancel()
        await asyncio.gather(run, return_exceptions=True)
        logger.info("Generation cancelled", model_id=model_id)
        raise GenerationCancelled(model_id)

    async def _run_with_deadline(self, model_id: str, input: dict[str, Any]) -> dict[str, Any]:
        try:
            return await asyncio.wait_for(self._run(model_id, input), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise RemoteInvocationError(
                f"Request timeout after {self.timeout:.0f}s waiting for {model_id}",
                kind=ErrorKind.TIMEOUT,
            ) from e

    async def _run(self, model_id: str, input: dict[str, Any]) -> dict[str, Any]:
        handle = await self._submit(model_id, input)
        logger.info("Submitted fal request", model_id=model_id, request_id=handle.request_id)

        try:
            while True:
                status = await self._request("GET", handle.status_url)
                state = status.get("status")
                if state == "COMPLETED":
                    break
                if state not in _PENDING_STATES:
                    raise RemoteInvocationError(
                        f"Unexpected queue status for {model_id}: {state}"
                    )
                await asyncio.sleep(self.poll_interval)

            result = await self._request("GET", handle.response_url)
        except asyncio.CancelledError:
            await self._cancel_quietly(handle)
            raise

        logger.info("fal request completed", model_id=model_id, request_id=handle.request_id)
        return result

    async def _submit(self, model_id: str, input: dict[str, Any]) -> QueueHandle:
        data = await self._request("POST", f"{self.queue_url}/{model_id}", json=input)
        request_id = data.get("request_id")
        if not request_id:
            raise RemoteInvocationError(f"fal did not return a request id for {model_id}")

        # Status URLs live under the app id (owner/name), not the full model path
        app_id = "/".join(model_id.split("/")[:2])
        base = f"{self.queue_url}/{app_id}/requests/{request_id}"
        return QueueHandle(
            request_id=request_id,
            status_url=data.get("status_url") or f"{base}/status",
            response_url=data.get("response_url") or base,
            cancel_url=data.get("cancel_url") or f"{base}/cancel",
        )

    async def _cancel_quietly(self, handle: QueueHandle) -> None:
        """Best-effort cancel of a queued request."""
        try:
            await self._client.put(handle.cancel_url, headers=self._headers)
        except httpx.HTTPError as e:
            logger.warning(
                "Failed to cancel fal request", request_id=handle.request_id, error=str(e)
            )

    async def _request(
        self,
        method: str,
        url: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, url, json=json, headers=self._headers)
        except httpx.TimeoutException as e:
            raise RemoteInvocationError(
                f"Request timeout: {e}", kind=ErrorKind.TIMEOUT
            ) from e
        except httpx.TransportError as e:
            raise RemoteInvocationError(
                f"Network error: {e}", kind=ErrorKind.NETWORK
            ) from e

        if response.is_error:
            raise _error_from_response(response)
        return response.json()


def _error_detail(response: httpx.Response) -> str:
    """Human-readable error detail from a fal error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    detail = body.get("detail", body) if isinstance(body, dict) else body
    if isinstance(detail, list):
        messages = [d.get("msg", str(d)) if isinstance(d, dict) else str(d) for d in detail]
        return "; ".join(messages)
    return str(detail)


def _error_from_response(response: httpx.Response) -> RemoteInvocationError:
    """Map an HTTP error response to a tagged RemoteInvocationError."""
    status = response.status_code
    detail = _error_detail(response)
    lowered = detail.lower()

    if status == 429:
        kind = ErrorKind.RATE_LIMITED
    elif status in (400, 422) or any(m in lowered for m in _CONTENT_POLICY_MARKERS):
        kind = ErrorKind.CONTENT_REJECTED
    elif status in (408, 504):
        kind = ErrorKind.TIMEOUT
    else:
        kind = ErrorKind.UNKNOWN

    return RemoteInvocationError(
        f"fal request failed ({status}): {detail}", kind=kind, status_code=status
    )
