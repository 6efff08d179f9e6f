"""
fivem_watch example entry point.

Queries one server (FIVEM_ADDRESS / FIVEM_PORT, or a cfx.re/join link as
FIVEM_ADDRESS) and then logs player and resource changes until interrupted.
"""

import asyncio
import sys

from loguru import logger

from fivem_watch import ClientEvent, FivemClient, QueryRejectedError
from fivem_watch.settings import global_settings


async def main() -> None:
    """Main function"""
    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level)

    address = global_settings.fivem_address
    port = global_settings.fivem_port
    logger.info(f"Testing server {address}:{port}...")

    async with FivemClient(
        address=address,
        port=port,
        use_structure=True,
        cache_ttl_ms=5000,
        retry={"max_attempts": 2, "initial_delay_ms": 500},
        circuit_breaker=True,
    ) as client:
        status = await client.get_status()
        logger.info(f"Status: {status}")

        try:
            server = await client.get_server_data()
            logger.info(f"sv_maxClients: {server.max_clients}")

            players = await client.get_server_players()
            logger.info(f"Players online: {len(players)}")

            named = client.filter_players(players, lambda p: p.name is not None)
            for player in client.sort_players(named, "name")[:3]:
                logger.info(f"  - {player} (id={player.id})")
        except QueryRejectedError as e:
            logger.error(f"Query failed: {e.to_dict()['error']['message']}")

        client.on(ClientEvent.PLAYER_JOIN, lambda p: logger.info(f"Player joined: {p}"))
        client.on(ClientEvent.PLAYER_LEAVE, lambda p: logger.info(f"Player left: {p}"))
        client.on(ClientEvent.RESOURCE_ADD, lambda r: logger.info(f"Resource added: {r}"))
        client.on(ClientEvent.RESOURCE_REMOVE, lambda r: logger.info(f"Resource removed: {r}"))
        client.start()

        logger.info("Watching for changes. Press Ctrl+C to stop.")
        try:
            while True:
                await asyncio.sleep(60)
        except asyncio.CancelledError:
            logger.info("Shutting down...")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
