"""HTTP webhook notification sink."""

from __future__ import annotations

import asyncio
import json
import logging

import aiohttp

from pyvinreg._redact import redact_url
from pyvinreg._signing import SIGNATURE_HEADER, sign_body
from pyvinreg.exceptions import VinRegSinkError
from pyvinreg.state.events import RegistryEvent

_logger = logging.getLogger(__name__)

EVENT_HEADER = "X-Vinreg-Event"


class WebhookNotificationSink:
    """POST each registry event as JSON to a URL.

    The ledger calls :meth:`publish` from whatever thread ran the
    operation; the delivery itself is scheduled onto *loop* with
    ``call_soon_threadsafe`` and runs as a task there.  Failed deliveries
    are logged, not retried.
    """

    def __init__(
        self,
        url: str,
        *,
        loop: asyncio.AbstractEventLoop,
        session: aiohttp.ClientSession | None = None,
        secret: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._loop = loop
        self._external_session = session is not None
        self._http_session = session
        self._secret = secret
        self._timeout = timeout
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def url(self) -> str:
        return self._url

    def publish(self, event: RegistryEvent) -> None:
        body = json.dumps(event.to_payload(), separators=(",", ":"))
        self._loop.call_soon_threadsafe(self._schedule, event, body)

    def _schedule(self, event: RegistryEvent, body: str) -> None:
        task = self._loop.create_task(self._deliver(event, body))
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Webhook delivery failed: %s", exc, exc_info=exc)

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return self._http_session

    def build_headers(self, event: RegistryEvent, body: str) -> dict[str, str]:
        headers: dict[str, str] = {
            "content-type": "application/json; charset=UTF-8",
            EVENT_HEADER: event.event_type.value,
        }
        if self._secret:
            headers[SIGNATURE_HEADER] = sign_body(self._secret, body)
        return headers

    async def _deliver(self, event: RegistryEvent, body: str) -> None:
        session = self._require_session()
        headers = self.build_headers(event, body)
        _logger.debug("POST %s event=%s sequence=%s", redact_url(self._url), event.event_type, event.sequence)

        try:
            async with session.post(
                self._url,
                data=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise VinRegSinkError(
                        f"HTTP {resp.status} from {redact_url(self._url)}: {text[:200]}",
                        vin=event.vin,
                        sink="webhook",
                    )
        except VinRegSinkError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise VinRegSinkError(
                f"Webhook request to {redact_url(self._url)} failed: {exc}",
                vin=event.vin,
                sink="webhook",
            ) from exc

    async def flush(self) -> None:
        """Wait until every delivery scheduled so far has finished."""
        # Let call_soon_threadsafe callbacks create their tasks first.
        await asyncio.sleep(0)
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.flush()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None

    def close(self) -> None:
        """Schedule :meth:`aclose` on the sink's loop."""
        if self._loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.aclose(), self._loop)

    def __repr__(self) -> str:
        return f"WebhookNotificationSink(url={redact_url(self._url)!r}, signed={bool(self._secret)})"
