import asyncio
import json

import pytest

from conftest import FakeWriter, make_ready, publish
from metanear.client.app import MetaNearApp
from metanear.client.infrastructure.rpc import RpcRemoteReader
from metanear.common.crypto import BoxCodec
from metanear.common.exceptions import (
    AuthenticationFailedError,
    MissingParametersError,
    NotReadyError,
    NothingPendingError,
)
from metanear.common.models import AppConfig


@pytest.mark.asyncio
async def test_changes_require_readiness(make_app) -> None:
    app = make_app("alice.testnet")
    with pytest.raises(NotReadyError):
        await app.set("greeting", "hi")
    with pytest.raises(NotReadyError):
        await app.send_message("bob.testnet", "hi")
    assert app.writer.calls == []


@pytest.mark.asyncio
async def test_on_key_added_before_ready_probe(make_app) -> None:
    app = make_app("alice.testnet")
    with pytest.raises(NothingPendingError):
        await app.on_key_added()


@pytest.mark.asyncio
async def test_access_public_key_format(make_app) -> None:
    app = make_app("alice.testnet")
    public_key = await app.get_access_public_key()
    assert public_key.startswith("ed25519:")
    assert await app.get_access_public_key() == public_key
    assert len(await app.get_serialized_access_public_key()) == 33


@pytest.mark.asyncio
async def test_wait_ready_released_by_on_key_added(make_app) -> None:
    app = make_app("alice.testnet")
    waiters = [asyncio.create_task(app.wait_ready()) for _ in range(2)]
    await asyncio.sleep(0)
    assert not any(w.done() for w in waiters)
    await app.on_key_added()
    await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)
    assert await app.ready()


@pytest.mark.asyncio
async def test_set_and_get_plain_json(make_app, ledger) -> None:
    app = make_app("alice.testnet")
    await make_ready(app)

    await app.set("profile", {"name": "Alice", "tags": [1, 2]})

    stored = ledger.values[("alice.testnet", "chat", "profile")]
    assert json.loads(stored) == {"name": "Alice", "tags": [1, 2]}
    assert await app.get("profile") == {"name": "Alice", "tags": [1, 2]}
    assert app.writer.calls[0][3] == app.config.GAS


@pytest.mark.asyncio
async def test_set_and_get_encrypted(make_app, ledger) -> None:
    app = make_app("alice.testnet")
    await make_ready(app)

    await app.set("diary", "dear diary", encrypted=True)

    stored = ledger.values[("alice.testnet", "chat", "diary")]
    assert "dear diary" not in stored
    assert await app.get("diary", encrypted=True) == "dear diary"
    with pytest.raises(json.JSONDecodeError):
        await app.get("diary")


@pytest.mark.asyncio
async def test_encrypt_by_default_config(make_app, ledger) -> None:
    app = make_app("alice.testnet", encrypt_values_by_default=True)
    await make_ready(app)
    await app.set("diary", [1, 2, 3])
    assert ledger.values[("alice.testnet", "chat", "diary")] != "[1, 2, 3]"
    assert await app.get("diary") == [1, 2, 3]


@pytest.mark.asyncio
async def test_encrypted_value_from_other_key_fails(make_app, ledger) -> None:
    alice = make_app("alice.testnet")
    await make_ready(alice)
    await alice.set("diary", "secret", encrypted=True)

    alice.update_encryption_key(BoxCodec.generate_key_pair().secret_key64)
    with pytest.raises(AuthenticationFailedError):
        await alice.get("diary", encrypted=True)


@pytest.mark.asyncio
async def test_get_missing_value(make_app) -> None:
    app = make_app("alice.testnet")
    assert await app.get("nothing") is None


@pytest.mark.asyncio
async def test_remove(make_app, ledger) -> None:
    app = make_app("alice.testnet")
    await make_ready(app)
    await app.set("k", 1)
    await app.remove("k")
    assert await app.get("k") is None


@pytest.mark.asyncio
async def test_publish_and_discover_encryption_key(make_app) -> None:
    alice = make_app("alice.testnet")
    bob = make_app("bob.testnet")
    await make_ready(bob)

    await bob.store_encryption_public_key()

    assert await alice.get_stored_encryption_public_key("bob.testnet") == (
        bob.get_encryption_public_key()
    )
    assert await alice.get_their_public_key(account_id="bob.testnet") == (
        bob.encryption_key_pair.public_key
    )


@pytest.mark.asyncio
async def test_pairwise_message_exchange(make_app, ledger) -> None:
    alice = make_app("alice.testnet")
    bob = make_app("bob.testnet")
    for app in (alice, bob):
        await make_ready(app)
        await app.store_encryption_public_key()

    box64 = await alice.encrypt_message("meet at noon", account_id="bob.testnet")
    await alice.send_message("bob.testnet", box64)

    assert await bob.num_messages() == 1
    pulled = await bob.pull_message()
    assert pulled["sender"] == "alice.testnet"
    plaintext = await bob.decrypt_message(pulled["message"], account_id="alice.testnet")
    assert plaintext == "meet at noon"
    assert await bob.pull_message() is None

    send_call = alice.writer.calls[-1]
    assert send_call[0] == "send_message"
    assert send_call[-1] == alice.config.MESSAGE_GAS


@pytest.mark.asyncio
async def test_message_to_wrong_recipient_fails(make_app) -> None:
    alice = make_app("alice.testnet")
    carol = make_app("carol.testnet")
    bob_key = BoxCodec.generate_key_pair()

    box64 = await alice.encrypt_message("for bob", their_public_key=bob_key.public_key)
    with pytest.raises(AuthenticationFailedError):
        await carol.decrypt_message(
            box64, their_public_key=alice.encryption_key_pair.public_key
        )


@pytest.mark.asyncio
async def test_encrypt_message_needs_peer(make_app) -> None:
    with pytest.raises(MissingParametersError):
        await make_app("alice.testnet").encrypt_message("hi")


@pytest.mark.asyncio
async def test_transient_write_failure_is_retried(make_app, ledger) -> None:
    app = make_app("alice.testnet")
    await make_ready(app)
    app.writer.fail_next = 1

    await app.set("k", "v")

    assert [c[0] for c in app.writer.calls] == ["set", "set"]
    assert await app.get("k") == "v"


@pytest.mark.asyncio
async def test_persistent_write_failure_surfaces(make_app) -> None:
    app = make_app("alice.testnet")
    await make_ready(app)
    app.writer.fail_next = 2

    with pytest.raises(ConnectionError):
        await app.set("k", "v")
    await app.set("k", "after")
    assert await app.get("k") == "after"


@pytest.mark.asyncio
async def test_encryption_key_survives_restart(make_app, storage) -> None:
    first = make_app("alice.testnet", storage=storage)
    second = make_app("alice.testnet", storage=storage)
    assert first.get_encryption_public_key() == second.get_encryption_public_key()


@pytest.mark.asyncio
async def test_apps_listing(make_app, ledger) -> None:
    ledger.installed["alice.testnet"] = ["chat", "notes"]
    assert await make_app("alice.testnet").apps() == ["chat", "notes"]


@pytest.mark.asyncio
async def test_get_from_other_app(make_app, ledger) -> None:
    publish(ledger, "bob.testnet", "notes", "title", "shopping")
    app = make_app("alice.testnet")
    assert await app.get_from("bob.testnet", "title", app_id="notes") == "shopping"


def test_missing_reader_uses_rpc_at_configured_node(storage, ledger) -> None:
    app = MetaNearApp(
        "chat",
        "alice.testnet",
        storage,
        None,
        FakeWriter(ledger, "alice.testnet", "chat"),
        AppConfig(network_id="testnet", node_url="https://rpc.example.org"),
    )
    assert isinstance(app.reader, RpcRemoteReader)
    assert app.reader.node_url == "https://rpc.example.org"
    assert app.peer_keys.reader is app.reader
