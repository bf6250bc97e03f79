"""Data types shared by the tracking SDK."""

import math
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

DEFAULT_API_URL = "https://luzzi.vercel.app/api"
DEFAULT_BATCH_SIZE = 10
DEFAULT_FLUSH_INTERVAL = 30000  # milliseconds
MAX_EVENT_NAME_LENGTH = 255


class DeviceInfo(BaseModel):
    """
    Snapshot of the host device, taken once at init.

    Every field is optional; a probe that fails leaves its field unset.
    """

    model_config = ConfigDict(extra="ignore")

    os: Optional[str] = None
    app_version: Optional[str] = None
    browser: Optional[str] = None
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    language: Optional[str] = None
    timezone: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class LuzziConfig(BaseModel):
    """
    Options accepted by ``LuzziClient.init``.

    Attributes:
        api_url: Base URL of the ingestion API; events go to <api_url>/v1/events
        batch_size: Buffered events that trigger an immediate flush
        flush_interval: Milliseconds between timed flushes
        debug: Log every queued event and flush at DEBUG level
        device_info: Fields that override the auto-detected device snapshot
        user_agent: Browser user agent to derive os/browser from, when the
            SDK tracks on behalf of a web client
        timeout: HTTP timeout in seconds for each flush request
        flush_on_exit: Send whatever is still buffered when the interpreter exits
    """

    model_config = ConfigDict(extra="ignore")

    api_url: str = DEFAULT_API_URL
    batch_size: int = Field(DEFAULT_BATCH_SIZE, ge=1)
    flush_interval: int = Field(DEFAULT_FLUSH_INTERVAL, gt=0)
    debug: bool = False
    device_info: Optional[DeviceInfo] = None
    user_agent: Optional[str] = None
    timeout: float = Field(10.0, gt=0)
    flush_on_exit: bool = True


def _check_finite(value: Any) -> None:
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("non-finite float in properties")
    if isinstance(value, dict):
        for item in value.values():
            _check_finite(item)
    elif isinstance(value, list):
        for item in value:
            _check_finite(item)


class EventPayload(BaseModel):
    """
    One tracked event, exactly as it goes over the wire.

    Frozen once built; the queue owns it until its flush resolves.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    event: str = Field(..., min_length=1, max_length=MAX_EVENT_NAME_LENGTH)
    properties: Dict[str, JsonValue] = Field(default_factory=dict)
    timestamp: str
    session_id: str
    user_id: Optional[str] = None
    device: DeviceInfo = Field(default_factory=DeviceInfo)

    @field_validator("properties")
    @classmethod
    def reject_non_finite(cls, v: Dict[str, JsonValue]) -> Dict[str, JsonValue]:
        """NaN and infinity have no JSON encoding."""
        _check_finite(v)
        return v

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict; user_id is omitted for anonymous events."""
        data: Dict[str, Any] = {
            "event": self.event,
            "properties": self.properties,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "device": self.device.to_wire(),
        }
        if self.user_id is not None:
            data["user_id"] = self.user_id
        return data
