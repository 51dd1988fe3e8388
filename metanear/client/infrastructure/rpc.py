"""Infrastructure layer: read-only contract views over the ledger's JSON-RPC API.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any

import requests

from metanear.common.config import Config
from metanear.common.exceptions import RemoteCallError

HTTP_OK = 200

logger = logging.getLogger(__name__)


class RpcRemoteReader:
    """Calls view methods (``get``, ``apps``, ``num_messages``) on account contracts.

    Blocking HTTP runs in a worker thread so callers only ever suspend.
    """

    def __init__(
        self,
        node_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        config = Config()
        self.node_url = node_url or config.NODE_URL
        self.timeout = timeout if timeout is not None else config.RPC_TIMEOUT
        self.session = session or requests.Session()

    async def read(self, account_id: str, app_id: str, key: str) -> str | None:
        return await self.view(account_id, "get", {"app_id": app_id, "key": key})

    async def apps(self, account_id: str) -> Any:
        return await self.view(account_id, "apps", {})

    async def num_messages(self, account_id: str, app_id: str) -> int:
        result = await self.view(account_id, "num_messages", {"app_id": app_id})
        return int(result or 0)

    async def view(self, contract_id: str, method_name: str, args: dict[str, Any]) -> Any:
        return await asyncio.to_thread(self._view_sync, contract_id, method_name, args)

    def _view_sync(
        self, contract_id: str, method_name: str, args: dict[str, Any]
    ) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": "metanear",
            "method": "query",
            "params": {
                "request_type": "call_function",
                "finality": "final",
                "account_id": contract_id,
                "method_name": method_name,
                "args_base64": base64.b64encode(
                    json.dumps(args).encode()
                ).decode("ascii"),
            },
        }
        logger.debug("View %s.%s(%s)", contract_id, method_name, args)
        try:
            r = self.session.post(self.node_url, json=payload, timeout=self.timeout)
        except requests.RequestException as err:
            msg = f"RPC request to {self.node_url} failed: {err}"
            raise RemoteCallError(msg) from err

        if r.status_code != HTTP_OK:
            msg = f"RPC returned HTTP {r.status_code}"
            raise RemoteCallError(msg, status_code=r.status_code)

        try:
            body = r.json()
        except ValueError as err:
            msg = "RPC returned a non-JSON body"
            raise RemoteCallError(msg, status_code=r.status_code) from err

        if not isinstance(body, dict):
            msg = "RPC returned an unexpected body"
            raise RemoteCallError(msg, status_code=r.status_code)
        if body.get("error"):
            msg = f"RPC error: {body['error']}"
            raise RemoteCallError(msg)
        result = body.get("result") or {}
        if not isinstance(result, dict):
            msg = "RPC returned an unexpected result"
            raise RemoteCallError(msg)
        if result.get("error"):
            msg = f"View {method_name} failed: {result['error']}"
            raise RemoteCallError(msg)

        try:
            raw = bytes(result.get("result") or [])
            if not raw:
                return None
            return json.loads(raw.decode("utf-8"))
        except (TypeError, ValueError) as err:
            msg = f"View {method_name} returned a malformed result"
            raise RemoteCallError(msg) from err
