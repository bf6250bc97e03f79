"""Luzzi client SDK: buffered, batched product analytics tracking."""

from luzzi.sdk.client import LuzziClient
from luzzi.sdk.types import DeviceInfo, EventPayload, LuzziConfig

__all__ = ["DeviceInfo", "EventPayload", "LuzziClient", "LuzziConfig"]
