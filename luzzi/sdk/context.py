"""
Session id generation and device context collection.

Each probe is run on its own; a probe that raises or finds nothing simply
leaves its field out of the snapshot.
"""

import locale
import logging
import os
import platform
import random
import string
import sys
import time
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from luzzi.sdk.types import DeviceInfo

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def generate_session_id() -> str:
    """
    Generate a new opaque session id.

    A UUID4 normally; "<epoch ms>-<random base36>" if UUID generation is
    unavailable.
    """
    try:
        return str(uuid.uuid4())
    except Exception:
        suffix = "".join(random.choices(_BASE36, k=13))
        return f"{int(time.time() * 1000)}-{suffix}"


def os_from_user_agent(user_agent: str) -> Optional[str]:
    # Order matters: Android UAs also contain "Linux"
    if "Windows" in user_agent:
        return "windows"
    if "iPhone" in user_agent or "iPad" in user_agent:
        return "ios"
    if "Mac" in user_agent:
        return "macos"
    if "Android" in user_agent:
        return "android"
    if "Linux" in user_agent:
        return "linux"
    return None


def browser_from_user_agent(user_agent: str) -> Optional[str]:
    # Edge and Chrome both claim "Chrome"; Chrome also claims "Safari"
    if "Edg" in user_agent:
        return "edge"
    if "Chrome" in user_agent:
        return "chrome"
    if "Firefox" in user_agent:
        return "firefox"
    if "Safari" in user_agent:
        return "safari"
    return None


def _runtime_os() -> Optional[str]:
    return sys.platform or None


def _runtime_version() -> Optional[str]:
    return platform.python_version() or None


def _language() -> Optional[str]:
    language, _ = locale.getlocale()
    if not language or language in ("C", "POSIX"):
        language = os.environ.get("LANG", "").split(".")[0]
    if not language or language in ("C", "POSIX"):
        return None
    return language.replace("_", "-")


def _timezone() -> Optional[str]:
    return os.environ.get("TZ") or datetime.now().astimezone().tzname()


def _probe(name: str, probe: Callable[[], Optional[str]]) -> Optional[str]:
    try:
        return probe()
    except Exception as exc:
        logger.debug("Device probe %s failed: %s", name, exc)
        return None


def collect_device_info(user_agent: Optional[str] = None) -> DeviceInfo:
    """
    Inspect the runtime and build a DeviceInfo snapshot.

    Args:
        user_agent: Optional browser user agent. When given, the operating
            system and browser it names take precedence over the host
            runtime's platform.

    Returns:
        DeviceInfo with whatever fields could be determined; never raises
    """
    fields = {
        "os": _probe("os", _runtime_os),
        "app_version": _probe("app_version", _runtime_version),
        "language": _probe("language", _language),
        "timezone": _probe("timezone", _timezone),
    }

    if user_agent and isinstance(user_agent, str):
        ua_os = _probe("ua_os", lambda: os_from_user_agent(user_agent))
        if ua_os:
            fields["os"] = ua_os
        fields["browser"] = _probe(
            "ua_browser", lambda: browser_from_user_agent(user_agent)
        )

    return DeviceInfo(**{k: v for k, v in fields.items() if v is not None})


def merge_device_info(
    detected: DeviceInfo, overrides: Optional[DeviceInfo] = None
) -> DeviceInfo:
    """
    Layer caller-supplied device fields over the detected ones.

    Only fields the override actually sets win; unset override fields keep
    the detected value.
    """
    if overrides is None:
        return detected
    return DeviceInfo(
        **{**detected.to_wire(), **overrides.model_dump(exclude_none=True)}
    )
