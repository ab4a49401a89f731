from __future__ import annotations

import copy
from typing import Any, Callable

import httpx
import pytest

from findmine_mcp.clients.findmine import FindMineClient
from findmine_mcp.services.findmine import FindMineService
from findmine_mcp.services.resource_store import ResourceStore


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeFindMineClient:
    """Stands in for FindMineClient; returns canned payloads and counts calls."""

    def __init__(
        self,
        complete_the_look: dict[str, Any] | None = None,
        visually_similar: dict[str, Any] | None = None,
        analytics: dict[str, Any] | None = None,
        item_details: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.complete_the_look = complete_the_look or {"looks": []}
        self.visually_similar = visually_similar or {"products": [], "total": 0}
        self.analytics = analytics or {"success": True, "event_id": "evt-1"}
        self.item_details = item_details or {"success": True, "updated_count": 0, "failed_count": 0}
        self.error = error
        self.calls: dict[str, list[Any]] = {
            "complete_the_look": [],
            "visually_similar": [],
            "track_event": [],
            "update_item_details": [],
        }

    def _reply(self, name: str, request: Any, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls[name].append(request)
        if self.error is not None:
            raise self.error
        return copy.deepcopy(payload)

    async def get_complete_the_look(self, request):
        return self._reply("complete_the_look", request, self.complete_the_look)

    async def get_visually_similar(self, request):
        return self._reply("visually_similar", request, self.visually_similar)

    async def track_event(self, request):
        return self._reply("track_event", request, self.analytics)

    async def update_item_details(self, request):
        return self._reply("update_item_details", request, self.item_details)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def fake_client() -> type[FakeFindMineClient]:
    return FakeFindMineClient


@pytest.fixture()
def make_client(recording_sleep: RecordingSleep) -> Callable[..., FindMineClient]:
    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> FindMineClient:
        options = {
            "base_url": "https://api.findmine.test",
            "application_id": "APP123",
            "default_region": "us",
            "default_language": "en",
            "retry_count": 3,
            "retry_delay_ms": 1000,
            "sleep": recording_sleep,
        }
        options.update(kwargs)
        return FindMineClient(transport=httpx.MockTransport(handler), **options)

    return _make


@pytest.fixture()
def make_service(clock: FakeClock) -> Callable[..., FindMineService]:
    def _make(client: Any, **kwargs: Any) -> FindMineService:
        options = {
            "cache_enabled": True,
            "cache_ttl_ms": 60_000,
            "default_session_id": "test-session",
            "store": ResourceStore(),
            "clock": clock,
        }
        options.update(kwargs)
        return FindMineService(client, **options)

    return _make


@pytest.fixture()
def ctl_payload() -> dict[str, Any]:
    return {
        "pdp_item": {"product_id": "P1", "name": "Shirt", "price": 7999},
        "looks": [
            {
                "look_id": "L1",
                "products": [{"product_id": "P2", "name": "Pants", "price": 6999}],
            }
        ],
    }
