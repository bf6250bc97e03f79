"""
Event buffer with size- and time-triggered batch delivery.

Events are appended to an in-memory buffer and posted to the ingestion API
either when the buffer reaches ``batch_size`` or when the periodic flush
timer fires. A flush sends the buffer in request-sized chunks; the chunk
that fails and everything after it are put back at the head of the buffer
so the next flush retries them in their original order.

Inside a running asyncio loop flushes run as tasks on that loop. Without
one (plain synchronous hosts) the timer and size-triggered flushes run on
daemon threads with a synchronous httpx client.
"""

import asyncio
import json
import logging
import threading
from typing import List, NamedTuple, Optional, Tuple

import httpx

from luzzi.sdk.types import DEFAULT_BATCH_SIZE, DEFAULT_FLUSH_INTERVAL, EventPayload

logger = logging.getLogger(__name__)

# Failed batches are only re-buffered while the queue holds fewer than
# batch_size * RETRY_CEILING_FACTOR events
RETRY_CEILING_FACTOR = 10

# Largest request the ingestion API accepts
MAX_REQUEST_EVENTS = 1000
MAX_REQUEST_BYTES = 1_000_000

# Responses that will never succeed on retry
PERMANENT_REJECTIONS = frozenset({400, 413, 422})


class _Target(NamedTuple):
    """Where a drained batch goes, fixed at the moment it left the buffer."""

    api_key: str
    endpoint: str
    generation: int


Chunk = Tuple[List[EventPayload], bytes]


def encode_event(event: EventPayload) -> bytes:
    """Serialise one event the way it appears inside the request body."""
    return json.dumps(
        event.to_wire(), ensure_ascii=False, separators=(",", ":"), allow_nan=False
    ).encode("utf-8")


class EventQueue:
    """
    Buffers events and delivers them in batches.

    Nothing here raises to the caller: delivery failures are logged and the
    batch is re-buffered (bounded by the retry ceiling).
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        sync_http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._events: list[EventPayload] = []
        self._lock = threading.Lock()
        self._generation = 0

        self._timer_task: Optional[asyncio.Task] = None
        self._timer_stop: Optional[threading.Event] = None
        self._inflight: set[asyncio.Task] = set()
        self._flush_thread: Optional[threading.Thread] = None

        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._sync_http_client = sync_http_client
        self._owns_sync_http_client = sync_http_client is None

        self.api_key = ""
        self.api_url = ""
        self.batch_size = DEFAULT_BATCH_SIZE
        self.flush_interval = DEFAULT_FLUSH_INTERVAL
        self.debug = False
        self.timeout = 10.0

    def init(
        self,
        api_key: str,
        api_url: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval: int = DEFAULT_FLUSH_INTERVAL,
        debug: bool = False,
        timeout: float = 10.0,
    ) -> None:
        """Apply delivery settings and (re)start the flush timer."""
        self.api_key = api_key
        self.api_url = api_url
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.debug = debug
        self.timeout = timeout
        self._start_flush_timer()

    @property
    def endpoint(self) -> str:
        return f"{self.api_url.rstrip('/')}/v1/events"

    @property
    def retry_ceiling(self) -> int:
        return self.batch_size * RETRY_CEILING_FACTOR

    @property
    def request_size(self) -> int:
        """Most events sent in one request."""
        return min(self.batch_size, MAX_REQUEST_EVENTS)

    @property
    def pending(self) -> list[EventPayload]:
        """Copy of the buffered events, oldest first."""
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def push(self, event: EventPayload) -> None:
        """Buffer an event, flushing in the background once the batch is full."""
        with self._lock:
            self._events.append(event)
            overflow = len(self._events) - self.retry_ceiling
            if overflow > 0:
                del self._events[:overflow]
            queued = len(self._events)

        if overflow > 0:
            logger.warning(
                "[Luzzi] Event buffer full, discarding %d oldest events", overflow
            )

        if self.debug:
            logger.debug(
                "Event queued",
                extra={"context": {"event": event.event, "queued": queued}},
            )

        if queued >= self.batch_size:
            self.schedule_flush()

    def schedule_flush(self) -> None:
        """
        Start a flush without waiting for it.

        Inside an event loop the buffer is snapshotted immediately, so events
        pushed afterwards go into the next batch. Without a running loop the
        flush runs on a background thread; while one is still sending, the
        events stay buffered for the next trigger.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._schedule_flush_in_thread()
            return

        events, target = self._drain()
        if not events:
            return

        task = loop.create_task(self._send(events, target))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def flush(self) -> None:
        """Send everything buffered right now; no-op when the buffer is empty."""
        events, target = self._drain()
        if not events:
            return
        await self._send(events, target)

    def flush_blocking(self) -> None:
        """
        Synchronously send whatever is buffered, best effort.

        Used at interpreter exit when no event loop is available. Failed
        events are dropped rather than re-buffered.
        """
        self._flush_sync(requeue=False)

    def reset(self) -> None:
        """Stop the timer and abandon buffered events."""
        self._stop_flush_timer()
        with self._lock:
            self._events = []
            self._generation += 1

    async def join(self) -> None:
        """Wait for background flushes started so far to finish."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def close(self) -> None:
        """Stop the timer, send what is left and wait for in-flight batches."""
        self._stop_flush_timer()
        await self.flush()
        await self.join()

        thread = self._flush_thread
        if thread is not None and thread.is_alive():
            await asyncio.to_thread(thread.join, self.timeout)

        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        if self._owns_sync_http_client and self._sync_http_client is not None:
            self._sync_http_client.close()
            self._sync_http_client = None

    def _drain(self) -> Tuple[list[EventPayload], _Target]:
        with self._lock:
            events = self._events
            self._events = []
            target = _Target(self.api_key, self.endpoint, self._generation)
        return events, target

    def _chunks(self, events: list[EventPayload]) -> list[Chunk]:
        """
        Split events into request bodies the ingestion API accepts.

        Each chunk holds at most ``request_size`` events and stays under
        MAX_REQUEST_BYTES. Events that cannot be encoded as JSON are dropped.
        """
        limit = self.request_size
        chunks: list[Chunk] = []
        batch: list[EventPayload] = []
        encoded: list[bytes] = []
        size = 0

        for event in events:
            try:
                body = encode_event(event)
            except (TypeError, ValueError) as exc:
                logger.warning(
                    "[Luzzi] Dropping event %r that cannot be encoded: %s",
                    event.event,
                    exc,
                )
                continue

            if batch and (
                len(batch) >= limit or size + len(body) + 1 > MAX_REQUEST_BYTES
            ):
                chunks.append((batch, self._build_body(encoded)))
                batch, encoded, size = [], [], 0

            batch.append(event)
            encoded.append(body)
            size += len(body) + 1

        if batch:
            chunks.append((batch, self._build_body(encoded)))
        return chunks

    @staticmethod
    def _build_body(encoded: list[bytes]) -> bytes:
        return b'{"events":[' + b",".join(encoded) + b"]}"

    @staticmethod
    def _headers(target: _Target) -> dict[str, str]:
        return {"x-api-key": target.api_key, "content-type": "application/json"}

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def _get_sync_http_client(self) -> httpx.Client:
        if self._sync_http_client is None:
            self._sync_http_client = httpx.Client(timeout=self.timeout)
        return self._sync_http_client

    async def _send(self, events: list[EventPayload], target: _Target) -> None:
        chunks = self._chunks(events)
        for index, (batch, body) in enumerate(chunks):
            try:
                response = await self._get_http_client().post(
                    target.endpoint, content=body, headers=self._headers(target)
                )
            except httpx.HTTPError as exc:
                logger.warning("[Luzzi] Failed to send events: %s", exc)
                response = None
            except Exception as exc:
                logger.warning("[Luzzi] Unexpected error sending events: %s", exc)
                response = None

            if not self._handle_response(response, batch):
                self._requeue(self._unsent(chunks, index), target)
                return

    def _flush_sync(self, requeue: bool = True) -> None:
        events, target = self._drain()
        if not events:
            return

        chunks = self._chunks(events)
        for index, (batch, body) in enumerate(chunks):
            try:
                response = self._get_sync_http_client().post(
                    target.endpoint, content=body, headers=self._headers(target)
                )
            except httpx.HTTPError as exc:
                logger.warning("[Luzzi] Failed to send events: %s", exc)
                response = None
            except Exception as exc:
                logger.warning("[Luzzi] Unexpected error sending events: %s", exc)
                response = None

            if not self._handle_response(response, batch):
                unsent = self._unsent(chunks, index)
                if requeue:
                    self._requeue(unsent, target)
                else:
                    logger.warning("[Luzzi] Dropped %d events at exit", len(unsent))
                return

    @staticmethod
    def _unsent(chunks: list[Chunk], start: int) -> list[EventPayload]:
        return [event for batch, _ in chunks[start:] for event in batch]

    def _handle_response(
        self, response: Optional[httpx.Response], batch: list[EventPayload]
    ) -> bool:
        """
        Log the outcome of one request.

        Returns:
            False when the batch should be kept for retry
        """
        if response is None:
            return False

        if not response.is_success:
            try:
                error = response.json()
            except ValueError:
                error = response.text

            if response.status_code in PERMANENT_REJECTIONS:
                logger.warning(
                    "[Luzzi] Server rejected %d events, discarding: HTTP %d %s",
                    len(batch),
                    response.status_code,
                    error,
                )
                return True

            logger.warning(
                "[Luzzi] Failed to send events: HTTP %d %s",
                response.status_code,
                error,
            )
            return False

        try:
            result = response.json()
        except ValueError:
            result = {}

        dropped = result.get("dropped", 0) if isinstance(result, dict) else 0
        if dropped:
            logger.warning(
                "[Luzzi] Server dropped %d events: project quota reached", dropped
            )

        if self.debug:
            logger.debug(
                "Events sent",
                extra={"context": {"sent": len(batch), "response": result}},
            )
        return True

    def _requeue(
        self, events: list[EventPayload], target: Optional[_Target] = None
    ) -> None:
        """
        Put a failed batch back at the head of the buffer, within the ceiling.

        Batches drained before the last reset belong to a previous
        configuration and are discarded.
        """
        with self._lock:
            if target is not None and target.generation != self._generation:
                stale = True
            else:
                stale = False
                ceiling = self.retry_ceiling
                if len(self._events) >= ceiling:
                    overflow = len(events)
                    kept = False
                else:
                    combined = events + self._events
                    overflow = max(len(combined) - ceiling, 0)
                    self._events = combined[overflow:]
                    kept = True

        if stale:
            logger.debug(
                "Discarding %d events from a previous configuration", len(events)
            )
        elif not kept:
            logger.warning(
                "[Luzzi] Retry buffer full, discarding %d events", overflow
            )
        elif overflow:
            logger.warning(
                "[Luzzi] Retry buffer full, discarding %d oldest events", overflow
            )

    def _schedule_flush_in_thread(self) -> None:
        if self._flush_thread is not None and self._flush_thread.is_alive():
            return
        self._flush_thread = threading.Thread(
            target=self._flush_sync, name="luzzi-flush", daemon=True
        )
        self._flush_thread.start()

    def _start_flush_timer(self) -> None:
        self._stop_flush_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            stop = threading.Event()
            threading.Thread(
                target=self._run_flush_timer_thread,
                args=(stop,),
                name="luzzi-flush-timer",
                daemon=True,
            ).start()
            self._timer_stop = stop
            return
        self._timer_task = loop.create_task(self._run_flush_timer())

    def _stop_flush_timer(self) -> None:
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None
        if self._timer_stop is not None:
            self._timer_stop.set()
            self._timer_stop = None

    async def _run_flush_timer(self) -> None:
        interval = self.flush_interval / 1000
        while True:
            await asyncio.sleep(interval)
            self.schedule_flush()

    def _run_flush_timer_thread(self, stop: threading.Event) -> None:
        interval = self.flush_interval / 1000
        while not stop.wait(interval):
            self._flush_sync()
