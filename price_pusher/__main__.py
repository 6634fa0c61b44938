"""Run the price pusher: ``python -m price_pusher``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from price_pusher.account import NearAccount
from price_pusher.config import get_config
from price_pusher.errors import PusherError
from price_pusher.log import configure_logging
from price_pusher.price_feed import HermesClient
from price_pusher.pusher import PricePusher

logger = logging.getLogger("price_pusher")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="price_pusher",
        description="Keep a NEAR Pyth price feed no staler than MAX_SECONDS_GAP.",
    )
    parser.add_argument(
        "--env",
        default=os.environ.get("NODE_ENV", "development"),
        help="mainnet/production or testnet/development (default: $NODE_ENV or development)",
    )
    parser.add_argument("--log-level", default="INFO", help="logging level (default: INFO)")
    parser.add_argument(
        "--cycles",
        type=int,
        default=None,
        help="stop after this many poll cycles (default: run forever)",
    )
    return parser


async def _run(env: str, cycles: int | None) -> None:
    config = get_config(env)
    account = NearAccount.from_config(config)
    feed = HermesClient(config.price_service_url, timeout_s=config.rpc_timeout_s)
    pusher = PricePusher(config, feed, account)
    logger.info(
        "pushing %s to %s on %s (updates %s, endpoints: %s)",
        config.price_id,
        config.pyth_contract_id,
        config.network_id,
        "enabled" if config.enable_update else "disabled",
        account.endpoints or [config.node_url],
    )
    try:
        await pusher.run(max_cycles=cycles)
    finally:
        await account.engine.drain()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level.upper())
    try:
        asyncio.run(_run(args.env, args.cycles))
    except PusherError as e:
        logger.error("%s: %s", e.error_code, e.message)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
