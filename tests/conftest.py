"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest


# Ensure the application package is importable when running tests without an
# editable install. ``app`` sits at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.models import DeviceIdentity  # noqa: E402

BASE_URL = "https://media.example.com"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def device() -> DeviceIdentity:
    return DeviceIdentity(
        client_name="X",
        version="1",
        device_id="d1",
        device_name="Phone",
    )


def raw_item(**overrides: Any) -> dict[str, Any]:
    """Return a minimal server item payload in PascalCase."""

    payload: dict[str, Any] = {
        "Id": "item-1",
        "Name": "Pilot",
        "Type": "Episode",
        "LocationType": "FileSystem",
        "ImageTags": {},
    }
    payload.update(overrides)
    return payload


def login_payload(token: str = "tok", user_id: str = "user-1") -> dict[str, Any]:
    return {"AccessToken": token, "SessionInfo": {"UserId": user_id}}
