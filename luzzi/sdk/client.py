"""
Luzzi tracking client.

Usage:
    client = LuzziClient()
    client.init("pk_live_...", {"batch_size": 20})
    client.track("signup_clicked", {"plan": "pro"})
    client.identify("user-42", {"email": "a@example.com"})
    await client.flush()
    await client.close()

None of the public methods raise to the caller. Misuse (calling before
init, empty event names) is logged and ignored.
"""

import atexit
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from luzzi.sdk.context import (
    collect_device_info,
    generate_session_id,
    merge_device_info,
)
from luzzi.sdk.queue import EventQueue
from luzzi.sdk.types import DEFAULT_API_URL, DeviceInfo, EventPayload, LuzziConfig

logger = logging.getLogger(__name__)

SDK_LOGGER_NAME = "luzzi.sdk"
IDENTIFY_EVENT = "$identify"


def utc_timestamp() -> str:
    """Current time as ISO 8601 UTC with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class LuzziClient:
    """
    Tracks product events for one project.

    Holds the session id, the identified user, the device snapshot and the
    event queue. Create one per process (or per project) and share it.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        sync_http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = ""
        self._api_url = DEFAULT_API_URL
        self._debug = False
        self._session_id = ""
        self._user_id: Optional[str] = None
        self._user_traits: dict[str, Any] = {}
        self._device_info = DeviceInfo()
        self._queue = EventQueue(
            http_client=http_client, sync_http_client=sync_http_client
        )
        self._initialized = False
        self._closed = False
        self._exit_hook_registered = False
        self._debug_handler: Optional[logging.Handler] = None
        self._saved_log_level: Optional[int] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    @property
    def queue(self) -> EventQueue:
        return self._queue

    def init(
        self,
        api_key: str,
        config: Optional[Union[LuzziConfig, Mapping[str, Any]]] = None,
    ) -> None:
        """
        Configure the client and start a new session.

        Calling init again reconfigures the client: a new session starts and
        events still buffered from the previous configuration are abandoned.

        Args:
            api_key: Project API key (pk_live_... or pk_test_...)
            config: LuzziConfig or a dict of its fields
        """
        if self._closed:
            logger.warning("[Luzzi] Client is closed; init() ignored")
            return

        if not api_key or not isinstance(api_key, str):
            logger.error("[Luzzi] API key is required")
            return

        try:
            if isinstance(config, LuzziConfig):
                resolved = config
            else:
                resolved = LuzziConfig.model_validate(dict(config or {}))

            self._api_key = api_key
            self._api_url = resolved.api_url
            self._debug = resolved.debug
            if resolved.debug:
                self._enable_debug_logging()
            else:
                self._restore_logging()

            self._session_id = generate_session_id()
            self._device_info = merge_device_info(
                collect_device_info(resolved.user_agent), resolved.device_info
            )

            self._queue.reset()
            self._queue.init(
                api_key=api_key,
                api_url=resolved.api_url,
                batch_size=resolved.batch_size,
                flush_interval=resolved.flush_interval,
                debug=resolved.debug,
                timeout=resolved.timeout,
            )

            if resolved.flush_on_exit:
                self._register_exit_hook()

            self._initialized = True
            logger.debug(
                "[Luzzi] Initialized",
                extra={
                    "context": {
                        "api_url": self._api_url,
                        "session_id": self._session_id,
                        "device": self._device_info.to_wire(),
                    }
                },
            )
        except Exception as exc:
            # Analytics must never break the host application
            logger.warning("[Luzzi] Failed to initialize cleanly: %s", exc)
            self._initialized = True

    def track(
        self, event_name: str, properties: Optional[Mapping[str, Any]] = None
    ) -> None:
        """
        Record an event.

        Args:
            event_name: Non-empty event name
            properties: JSON-serialisable event properties
        """
        if not self._ready("track"):
            return

        if not event_name or not isinstance(event_name, str):
            logger.warning("[Luzzi] Event name is required")
            return

        try:
            event = EventPayload(
                event=event_name,
                properties=dict(properties or {}),
                timestamp=utc_timestamp(),
                session_id=self._session_id,
                user_id=self._user_id,
                device=self._device_info,
            )
        except (ValidationError, TypeError, ValueError) as exc:
            logger.warning("[Luzzi] Dropping event %r: %s", event_name, exc)
            return

        self._queue.push(event)

    def identify(
        self, user_id: str, traits: Optional[Mapping[str, Any]] = None
    ) -> None:
        """
        Associate subsequent events with a user.

        Traits accumulate across calls; later values win. A "$identify"
        event carrying all traits plus "$user_id" is tracked.
        """
        if not self._ready("identify"):
            return

        if not user_id or not isinstance(user_id, str):
            logger.warning("[Luzzi] User ID is required")
            return

        self._user_id = user_id
        if traits:
            self._user_traits = {**self._user_traits, **traits}

        logger.debug("[Luzzi] User identified: %s", user_id)
        self.track(IDENTIFY_EVENT, {**self._user_traits, "$user_id": user_id})

    def reset(self) -> None:
        """
        Forget the identified user and start a new session (e.g. on logout).

        Buffered events are flushed first so they keep the old identity.
        """
        if not self._ready("reset"):
            return

        self._queue.schedule_flush()

        self._user_id = None
        self._user_traits = {}
        self._session_id = generate_session_id()
        logger.debug("[Luzzi] Reset, new session %s", self._session_id)

    async def flush(self) -> None:
        """Send all buffered events now. No-op before init."""
        if not self._initialized or self._closed:
            return
        await self._queue.flush()

    async def close(self) -> None:
        """Stop the timer, deliver remaining events and release the HTTP client."""
        if self._closed:
            return
        self._closed = True
        if self._exit_hook_registered:
            atexit.unregister(self._flush_at_exit)
            self._exit_hook_registered = False
        await self._queue.close()
        self._restore_logging()

    def get_session_id(self) -> str:
        return self._session_id

    def get_user_id(self) -> Optional[str]:
        return self._user_id

    async def __aenter__(self) -> "LuzziClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ready(self, operation: str) -> bool:
        if self._closed:
            logger.warning("[Luzzi] Client is closed; %s() ignored", operation)
            return False
        if not self._initialized:
            logger.warning("[Luzzi] SDK not initialized. Call init() first.")
            return False
        return True

    def _enable_debug_logging(self) -> None:
        """
        Send SDK records at DEBUG and above somewhere visible.

        A stderr handler is attached only when the host has not configured
        logging for the SDK or the root logger.
        """
        sdk_logger = logging.getLogger(SDK_LOGGER_NAME)
        if self._saved_log_level is None:
            self._saved_log_level = sdk_logger.level
        sdk_logger.setLevel(logging.DEBUG)

        if self._debug_handler is None and not sdk_logger.hasHandlers():
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
            sdk_logger.addHandler(handler)
            self._debug_handler = handler

    def _restore_logging(self) -> None:
        sdk_logger = logging.getLogger(SDK_LOGGER_NAME)
        if self._debug_handler is not None:
            sdk_logger.removeHandler(self._debug_handler)
            self._debug_handler = None
        if self._saved_log_level is not None:
            sdk_logger.setLevel(self._saved_log_level)
            self._saved_log_level = None

    def _register_exit_hook(self) -> None:
        if not self._exit_hook_registered:
            atexit.register(self._flush_at_exit)
            self._exit_hook_registered = True

    def _flush_at_exit(self) -> None:
        if self._initialized and not self._closed:
            self._queue.flush_blocking()
