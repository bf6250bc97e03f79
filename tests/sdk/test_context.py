"""Tests for session ids and device context collection."""

import platform
import re
import sys
import uuid
from unittest.mock import patch

import pytest

from luzzi.sdk.context import (
    browser_from_user_agent,
    collect_device_info,
    generate_session_id,
    merge_device_info,
    os_from_user_agent,
)
from luzzi.sdk.types import DeviceInfo

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/120.0.0.0"
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
CHROME_ANDROID = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
FIREFOX_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14.0; rv:121.0) Gecko/20100101 Firefox/121.0"
)


def test_session_ids_are_unique_uuids() -> None:
    """Test that session ids are fresh UUID4 strings."""
    ids = {generate_session_id() for _ in range(50)}
    assert len(ids) == 50
    for session_id in ids:
        assert uuid.UUID(session_id).version == 4


def test_session_id_fallback_without_uuid() -> None:
    """Test the "<ms>-<base36>" fallback when UUID generation fails."""
    with patch("luzzi.sdk.context.uuid.uuid4", side_effect=RuntimeError("no entropy")):
        session_id = generate_session_id()

    assert re.fullmatch(r"\d{13,}-[0-9a-z]{13}", session_id)


@pytest.mark.parametrize(
    "user_agent, expected_os, expected_browser",
    [
        (CHROME_WINDOWS, "windows", "chrome"),
        (EDGE_WINDOWS, "windows", "edge"),
        (SAFARI_IPHONE, "ios", "safari"),
        (CHROME_ANDROID, "android", "chrome"),
        (FIREFOX_MAC, "macos", "firefox"),
        ("curl/8.4.0", None, None),
    ],
)
def test_user_agent_sniffing(
    user_agent: str, expected_os: str | None, expected_browser: str | None
) -> None:
    """Test os and browser detection from common user agents."""
    assert os_from_user_agent(user_agent) == expected_os
    assert browser_from_user_agent(user_agent) == expected_browser


def test_collect_runtime_device_info() -> None:
    """Test that the runtime platform and interpreter version are reported."""
    info = collect_device_info()

    assert info.os == sys.platform
    assert info.app_version == platform.python_version()
    assert info.browser is None
    assert info.screen_width is None


def test_user_agent_overrides_runtime_os() -> None:
    """Test that a supplied user agent wins over the host platform."""
    info = collect_device_info(SAFARI_IPHONE)

    assert info.os == "ios"
    assert info.browser == "safari"


def test_failing_probe_leaves_field_unset() -> None:
    """Test that one failing probe does not affect the others."""
    with patch(
        "luzzi.sdk.context.platform.python_version", side_effect=RuntimeError("boom")
    ):
        info = collect_device_info()

    assert info.app_version is None
    assert info.os == sys.platform


def test_nothing_detectable_gives_empty_snapshot() -> None:
    """Test that a runtime with no recognizable indicators yields {}."""
    with (
        patch("luzzi.sdk.context._runtime_os", return_value=None),
        patch("luzzi.sdk.context._runtime_version", return_value=None),
        patch("luzzi.sdk.context._language", return_value=None),
        patch("luzzi.sdk.context._timezone", return_value=None),
    ):
        info = collect_device_info()

    assert info.to_wire() == {}


def test_merge_overrides_win_field_by_field() -> None:
    """Test that overrides replace only the fields they set."""
    detected = DeviceInfo(os="linux", app_version="3.12.1", language="en-US")
    overrides = DeviceInfo(os="custom-os", screen_width=1920)

    merged = merge_device_info(detected, overrides)

    assert merged.to_wire() == {
        "os": "custom-os",
        "app_version": "3.12.1",
        "language": "en-US",
        "screen_width": 1920,
    }


def test_merge_without_overrides() -> None:
    """Test that no overrides returns the detected snapshot."""
    detected = DeviceInfo(os="linux")
    assert merge_device_info(detected, None) == detected
