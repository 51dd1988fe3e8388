"""
Command-line interface for metanear key management and boxes.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

from metanear.client.infrastructure.rpc import RpcRemoteReader
from metanear.client.infrastructure.storage import JsonFileStorage
from metanear.client.key_store import KeyStore
from metanear.client.peer_keys import PeerKeyResolver
from metanear.common.config import Config
from metanear.common.crypto import PUBLIC_KEY_LENGTH, BoxCodec, b64decode_key, b64encode
from metanear.common.exceptions import MetaNearError
from metanear.common.logging_utils import setup_logger

logger = logging.getLogger("metanear")


def identity_options(func):
    func = click.option("--app", "app_id", required=True, help="App id")(func)
    return click.option("--account", "account_id", required=True, help="Account id")(
        func
    )


def _key_store(ctx: click.Context) -> KeyStore:
    return KeyStore(JsonFileStorage(ctx.obj["store"]))


def _peer_key(peer_key64: str) -> bytes:
    return b64decode_key(peer_key64, PUBLIC_KEY_LENGTH, peer=True)


def _run(func, *args):
    try:
        return func(*args)
    except MetaNearError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


@click.group()
@click.option(
    "--store",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Key-value store file (default: METANEAR_STORE_PATH or ~/.metanear/store.json)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, store: Path | None, verbose: bool) -> None:  # noqa: FBT001
    """metanear key and box tool"""
    ctx.ensure_object(dict)
    ctx.obj["store"] = store or Config().STORE_PATH
    setup_logger(logger, logging.DEBUG if verbose else logging.WARNING)


@cli.command()
@identity_options
@click.pass_context
def keygen(ctx: click.Context, account_id: str, app_id: str) -> None:
    """Show (or create) the encryption public key"""
    key_pair = _run(_key_store(ctx).get_or_create_key_pair, account_id, app_id)
    click.echo(key_pair.public_key64)


@cli.command("import-key")
@identity_options
@click.argument("secret_key64")
@click.pass_context
def import_key(
    ctx: click.Context, account_id: str, app_id: str, secret_key64: str
) -> None:
    """Replace the encryption key with a base64 secret key"""
    key_pair = _run(
        _key_store(ctx).update_key_pair, account_id, app_id, secret_key64
    )
    click.echo(key_pair.public_key64)


@cli.command()
@identity_options
@click.argument("text")
@click.pass_context
def seal(ctx: click.Context, account_id: str, app_id: str, text: str) -> None:
    """Seal TEXT in a secret box under the app's own key"""
    key_pair = _run(_key_store(ctx).get_or_create_key_pair, account_id, app_id)
    click.echo(_run(BoxCodec.encrypt_secret_box, text, key_pair.secret_key))


@cli.command()
@identity_options
@click.argument("box64")
@click.pass_context
def unseal(ctx: click.Context, account_id: str, app_id: str, box64: str) -> None:
    """Open a secret box sealed under the app's own key"""
    key_pair = _run(_key_store(ctx).get_or_create_key_pair, account_id, app_id)
    click.echo(_run(BoxCodec.decrypt_secret_box, box64, key_pair.secret_key))


@cli.command()
@identity_options
@click.option("--peer-key", required=True, help="Peer public key (base64)")
@click.argument("text")
@click.pass_context
def encrypt(
    ctx: click.Context, account_id: str, app_id: str, peer_key: str, text: str
) -> None:
    """Box TEXT for a peer"""
    key_pair = _run(_key_store(ctx).get_or_create_key_pair, account_id, app_id)
    their_key = _run(_peer_key, peer_key)
    click.echo(_run(BoxCodec.encrypt_box, text, their_key, key_pair.secret_key))


@cli.command()
@identity_options
@click.option("--peer-key", required=True, help="Sender public key (base64)")
@click.argument("box64")
@click.pass_context
def decrypt(
    ctx: click.Context, account_id: str, app_id: str, peer_key: str, box64: str
) -> None:
    """Open a box sent by a peer"""
    key_pair = _run(_key_store(ctx).get_or_create_key_pair, account_id, app_id)
    their_key = _run(_peer_key, peer_key)
    click.echo(_run(BoxCodec.decrypt_box, box64, their_key, key_pair.secret_key))


@cli.command()
@click.option("--app", "app_id", required=True, help="App id")
@click.option("--peer", required=True, help="Peer account id")
@click.option(
    "--node-url",
    default=None,
    help="JSON-RPC endpoint (default: METANEAR_NODE_URL or testnet)",
)
def resolve(app_id: str, peer: str, node_url: str | None) -> None:
    """Fetch a peer's published encryption public key"""
    resolver = PeerKeyResolver(RpcRemoteReader(node_url=node_url), app_id)
    key = _run(asyncio.run, resolver.resolve_peer_public_key(account_id=peer))
    click.echo(b64encode(key))


if __name__ == "__main__":
    cli()
