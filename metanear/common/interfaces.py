"""
Protocols for the external collaborators the SDK is wired to.
"""

from __future__ import annotations

from typing import Any, Protocol


class IKeyValueStore(Protocol):
    """Local string key-value store (get/set/remove by string key)."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class IRemoteReader(Protocol):
    """Read-only view calls against an account's contract."""

    async def read(self, account_id: str, app_id: str, key: str) -> str | None: ...

    async def apps(self, account_id: str) -> Any: ...

    async def num_messages(self, account_id: str, app_id: str) -> int: ...


class IRemoteWriter(Protocol):
    """State-mutating contract calls, signed by the account's access key.

    Implementations own transaction signing and gas accounting. Callers
    reach them only through a CallSerializer.
    """

    async def set(self, key: str, value: str, gas: int) -> Any: ...

    async def remove(self, key: str, gas: int) -> Any: ...

    async def pull_message(self, gas: int) -> Any: ...

    async def send_message(
        self, receiver_id: str, app_id: str, message: str, gas: int
    ) -> Any: ...
