"""Unit tests for the native error bridge."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from slidebridge.exceptions import NativeError
from slidebridge.slide.bridge import check, raise_for_error
from slidebridge.slide.handle import SlideHandle


@pytest.fixture
def handle(fake_api: Any) -> Iterator[SlideHandle]:
    opened = SlideHandle(fake_api.open(b"/slides/a.svs"), fake_api)
    yield opened
    opened.release()


def test_check_returns_none_for_empty_slot(fake_api: Any, handle: Any) -> None:
    assert check(fake_api, handle, "openslide_get_level_count") is None


def test_check_wraps_native_text(fake_api: Any, handle: Any) -> None:
    fake_api._errors[handle.address] = "Can't read tile"

    error = check(fake_api, handle, "openslide_read_region", "/slides/a.svs")

    assert isinstance(error, NativeError)
    assert error.native_message == "Can't read tile"
    assert error.operation == "openslide_read_region"
    assert "/slides/a.svs" in str(error)


def test_raise_for_error_raises(fake_api: Any, handle: Any) -> None:
    fake_api._errors[handle.address] = "Can't read tile"

    with pytest.raises(NativeError, match="openslide_read_region: Can't read tile"):
        raise_for_error(fake_api, handle, "openslide_read_region")


def test_raise_for_error_quiet_when_clear(fake_api: Any, handle: Any) -> None:
    raise_for_error(fake_api, handle, "openslide_get_level_count")
    assert fake_api.calls[-1] == "get_error"
