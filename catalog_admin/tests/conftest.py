"""Shared test fixtures for the catalog admin test suite."""

import json
import random
from io import BytesIO
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from catalog_admin.settings import MemoryStore, Settings
from catalog_admin.store import ProductStore
from catalog_admin.transport import TransportResponse


class FakeTransport:
    """Records requests and replays queued responses or exceptions."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._queue: List[Any] = []

    def queue(self, status_code: int, body: Any = b"") -> None:
        if not isinstance(body, (bytes, str)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._queue.append(TransportResponse(status_code=status_code, content=body))

    def queue_error(self, error: Exception) -> None:
        self._queue.append(error)

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Any] = None,
    ) -> TransportResponse:
        self.calls.append({
            "method": method,
            "url": url,
            "headers": dict(headers or {}),
            "json_body": json_body,
        })
        if not self._queue:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self._queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def settings():
    """Settings on an in-memory store with a test backend and key."""
    s = Settings(MemoryStore())
    s.api_domain = "https://api.test.local"
    s.admin_api_key = "secret-token"
    return s


@pytest.fixture
def store(settings, fake_transport):
    return ProductStore(settings, transport=fake_transport)


@pytest.fixture
def product_dicts():
    """Two products as the backend returns them."""
    return [
        {
            "id": 1,
            "name": "Soap",
            "price": 5.0,
            "currency": "USD",
            "description": "Lavender bar",
            "image": "",
        },
        {
            "id": 7,
            "name": "Mug",
            "price": 9.99,
            "currency": "XMR",
            "description": "",
            "image": "data:image/png;base64,iVBORw0KGgo=",
        },
    ]


@pytest.fixture
def small_image():
    """A 64x48 solid-color RGB image."""
    return Image.new("RGB", (64, 48), (200, 30, 30))


@pytest.fixture
def noise_image():
    """A 400x300 random-noise image; noise barely compresses under JPEG."""
    rng = random.Random(1234)
    data = bytes(rng.getrandbits(8) for _ in range(400 * 300 * 3))
    return Image.frombytes("RGB", (400, 300), data)


@pytest.fixture
def png_bytes(small_image):
    output = BytesIO()
    small_image.save(output, format="PNG")
    return output.getvalue()
