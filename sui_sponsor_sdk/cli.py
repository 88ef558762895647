# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Command-line interface for sponsored sends.

Commands:
    send: Run one sponsored self-transfer and print the sponsor's answer.
    load: Run sponsored self-transfers in batches until interrupted (or for
        ``--batches`` batches).
    gas-price: Print the network's reference gas price.

Configuration comes from ``--config`` (a JSON file, see
:meth:`SponsorConfig.from_file`) or, without it, from the environment (see
:meth:`SponsorConfig.from_env`).

Examples:
    One send against a local gas station::

        python -m sui_sponsor_sdk.cli send --config .config.json

    Ten batches of twenty::

        python -m sui_sponsor_sdk.cli load --config .config.json \
            --batches 10 --batch-size 20
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import tempfile
import unittest
import unittest.mock
from typing import List, Optional

import httpx

from .account import Account
from .async_client import FullnodeClient, GasStationClient, SubmissionResult
from .config import SponsorConfig
from .exceptions import ConfigError, SponsorError
from .sponsored_transaction import SponsoredTransaction
from .transaction_worker import TransactionWorker


def gas_station_client(
    config: SponsorConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> GasStationClient:
    return GasStationClient(
        config.sponsor_url,
        gas_path=config.gas_path,
        submit_path=config.submit_path,
        transport=transport,
    )


async def send(
    config: SponsorConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> SubmissionResult:
    """Run one sponsored self-transfer of ``config.amount``."""
    account = Account.load_key(config.secret_key)
    gas_station = gas_station_client(config, transport)
    try:
        attempt = SponsoredTransaction.transfer_to_self(
            account, gas_station, config.amount
        )
        return await attempt.execute()
    finally:
        await gas_station.close()


async def load(
    config: SponsorConfig,
    batches: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TransactionWorker:
    """Run self-transfers in batches of ``config.batch_size``."""
    account = Account.load_key(config.secret_key)
    gas_station = gas_station_client(config, transport)
    worker = TransactionWorker(
        lambda: SponsoredTransaction.transfer_to_self(
            account, gas_station, config.amount
        ),
        batch_size=config.batch_size,
        interval=config.batch_interval,
    )
    try:
        await worker.run(batches)
    finally:
        await gas_station.close()
    return worker


async def gas_price(
    config: SponsorConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> int:
    fullnode = FullnodeClient(config.network_url, transport=transport)
    try:
        return await fullnode.reference_gas_price()
    finally:
        await fullnode.close()


async def main(args: List[str]):
    parser = argparse.ArgumentParser(description="Sui sponsored transaction client")
    parser.add_argument(
        "command",
        type=str,
        help="The command to execute",
        choices=["send", "load", "gas-price"],
    )
    parser.add_argument(
        "--config",
        help="Path to a JSON config with sponsorUrl, rpcUrl and secretKey",
        type=str,
    )
    parser.add_argument(
        "--batches",
        help="Number of batches for 'load'; runs until interrupted if omitted",
        type=int,
    )
    parser.add_argument(
        "--batch-size",
        help="Concurrent attempts per batch, overrides the config",
        type=int,
    )
    parser.add_argument(
        "--verbose", help="Log at DEBUG level", action="store_true", default=False
    )
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        if parsed_args.config:
            config = SponsorConfig.from_file(parsed_args.config)
        else:
            config = SponsorConfig.from_env()
    except ConfigError as e:
        parser.error(str(e))
    if parsed_args.batch_size is not None:
        if parsed_args.batch_size < 1:
            parser.error("--batch-size must be positive")
        config.batch_size = parsed_args.batch_size

    try:
        if parsed_args.command == "send":
            result = await send(config)
            body = {"response": result.raw, "errors": result.errors}
            print(json.dumps(body, indent=2))
        elif parsed_args.command == "load":
            worker = await load(config, parsed_args.batches)
            print(f"{worker.succeeded} succeeded, {worker.failed} failed")
        elif parsed_args.command == "gas-price":
            print(await gas_price(config))
    except (SponsorError, ValueError) as e:
        logging.error("%s failed: %s", parsed_args.command, e)
        sys.exit(1)


class Test(unittest.IsolatedAsyncioTestCase):
    def config(self) -> SponsorConfig:
        return SponsorConfig(
            "http://127.0.0.1:4000",
            "http://127.0.0.1:9000",
            Account.generate().export_key(),
            batch_size=4,
            batch_interval=0,
        )

    def mock_sponsor(self):
        from .testing import MockSponsor

        return MockSponsor()

    async def test_send(self):
        sponsor = self.mock_sponsor()
        result = await send(self.config(), httpx.MockTransport(sponsor))
        self.assertEqual(result.digest, "digest1")
        self.assertEqual(len(sponsor.submitted), 1)

    async def test_load(self):
        sponsor = self.mock_sponsor()
        worker = await load(self.config(), 3, httpx.MockTransport(sponsor))
        self.assertEqual(worker.succeeded, 12)
        self.assertEqual(len(sponsor.submitted), 12)

    async def test_gas_price(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": body["id"], "result": "1000"}
            )

        self.assertEqual(
            await gas_price(self.config(), httpx.MockTransport(handler)), 1000
        )

    async def test_main_requires_config(self):
        with unittest.mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(SystemExit):
                with unittest.mock.patch("sys.stderr"):
                    await main(["send"])

    async def test_main_rejects_bad_config_file(self):
        (file, path) = tempfile.mkstemp(suffix=".json")
        os.close(file)
        with self.assertRaises(SystemExit):
            with unittest.mock.patch("sys.stderr"):
                await main(["send", "--config", path])


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
