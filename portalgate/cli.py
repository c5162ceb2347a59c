"""
Module key minting.

Prints a fresh module secret and its SHA-256 digest. The secret goes to the
module's deployment; only the digest is kept by the gateway.
"""

import asyncio
import logging
from typing import Optional

import click
from dotenv import load_dotenv

from portalgate.modules.auth import ModuleKeyAdmin, generate_module_key
from portalgate.modules.config import get_config
from portalgate.modules.storage import StorageModule


async def _store_hash(module_id: str, key_hash: str) -> None:
    storage = StorageModule.from_config(get_config())
    client = await storage.connect()
    try:
        await ModuleKeyAdmin(client).register(module_id, key_hash)
    finally:
        await storage.disconnect()


@click.command()
@click.option("--module-id", "module_id", default=None, help="Module the key is minted for")
@click.option("--store", "store", is_flag=True, default=False, help="Write the hash to Redis")
def main(module_id: Optional[str], store: bool):
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if store and not module_id:
        raise click.UsageError("--store requires --module-id")

    secret, key_hash = generate_module_key()
    click.echo(f"MODULE_KEY={secret}")
    click.echo(f"MODULE_KEY_HASH={key_hash}")

    if store:
        asyncio.run(_store_hash(module_id, key_hash))
        click.echo(f"Stored key hash for module {module_id}")


if __name__ == "__main__":
    main()
