from __future__ import annotations

import json
from typing import Any

import pytest

from metanear.client.app import MetaNearApp
from metanear.client.infrastructure.storage import InMemoryStorage
from metanear.common.models import AppConfig


class FakeLedger:
    """In-memory contract state shared by every account's reader and writer."""

    def __init__(self) -> None:
        self.values: dict[tuple[str, str, str], str] = {}
        self.inboxes: dict[tuple[str, str], list[dict[str, str]]] = {}
        self.installed: dict[str, list[str]] = {}


class FakeReader:
    def __init__(self, ledger: FakeLedger) -> None:
        self.ledger = ledger
        self.reads: list[tuple[str, str, str]] = []

    async def read(self, account_id: str, app_id: str, key: str) -> str | None:
        self.reads.append((account_id, app_id, key))
        return self.ledger.values.get((account_id, app_id, key))

    async def apps(self, account_id: str) -> Any:
        return self.ledger.installed.get(account_id, [])

    async def num_messages(self, account_id: str, app_id: str) -> int:
        return len(self.ledger.inboxes.get((account_id, app_id), []))


class FakeWriter:
    """Change calls for one account. ``fail_next`` raises before applying."""

    def __init__(self, ledger: FakeLedger, account_id: str, app_id: str) -> None:
        self.ledger = ledger
        self.account_id = account_id
        self.app_id = app_id
        self.calls: list[tuple[Any, ...]] = []
        self.fail_next = 0

    def _maybe_fail(self) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise ConnectionError("connection dropped")

    async def set(self, key: str, value: str, gas: int) -> None:
        self.calls.append(("set", key, value, gas))
        self._maybe_fail()
        self.ledger.values[(self.account_id, self.app_id, key)] = value

    async def remove(self, key: str, gas: int) -> None:
        self.calls.append(("remove", key, gas))
        self._maybe_fail()
        self.ledger.values.pop((self.account_id, self.app_id, key), None)

    async def pull_message(self, gas: int) -> Any:
        self.calls.append(("pull_message", gas))
        self._maybe_fail()
        inbox = self.ledger.inboxes.get((self.account_id, self.app_id), [])
        return inbox.pop(0) if inbox else None

    async def send_message(
        self, receiver_id: str, app_id: str, message: str, gas: int
    ) -> None:
        self.calls.append(("send_message", receiver_id, app_id, message, gas))
        self._maybe_fail()
        self.ledger.inboxes.setdefault((receiver_id, app_id), []).append(
            {"sender": self.account_id, "message": message}
        )


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def make_app(ledger: FakeLedger):
    """Build a MetaNearApp for an account with its own local storage."""

    def factory(
        account_id: str,
        app_id: str = "chat",
        storage: InMemoryStorage | None = None,
        **config: Any,
    ) -> MetaNearApp:
        return MetaNearApp(
            app_id,
            account_id,
            storage if storage is not None else InMemoryStorage(),
            FakeReader(ledger),
            FakeWriter(ledger, account_id, app_id),
            AppConfig(network_id="testnet", **config),
        )

    return factory


async def make_ready(app: MetaNearApp) -> None:
    """Walk an app through the access key handshake."""
    await app.ready()
    await app.on_key_added()


def publish(ledger: FakeLedger, account_id: str, app_id: str, key: str, value: Any) -> None:
    ledger.values[(account_id, app_id, key)] = json.dumps(value)
