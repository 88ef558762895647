# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sponsored Load Example - batches of concurrent sponsored self-transfers.

Every attempt gets its own draft and its own gas data; a failing attempt is
logged and counted without stopping the rest of its batch.

Examples:
    Run three batches of twenty::

        python -m examples.load_test
"""

import asyncio
import logging

from sui_sponsor_sdk.account import Account
from sui_sponsor_sdk.async_client import GasStationClient
from sui_sponsor_sdk.sponsored_transaction import SponsoredTransaction
from sui_sponsor_sdk.transaction_worker import BatchReport, TransactionWorker

from .common import SECRET_KEY, SPONSOR_URL


def print_report(report: BatchReport):
    print(f"Batch {report.batch}: {report.succeeded} ok, {report.failed} failed")


async def main():
    logging.basicConfig(level=logging.INFO)

    gas_station = GasStationClient(SPONSOR_URL)
    sender = Account.load_key(SECRET_KEY) if SECRET_KEY else Account.generate()

    worker = TransactionWorker(
        lambda: SponsoredTransaction.transfer_to_self(sender, gas_station, 1_000),
        batch_size=20,
        interval=2.0,
        on_report=print_report,
    )
    await worker.run(batches=3)

    print(f"\nTotal: {worker.succeeded} ok, {worker.failed} failed")
    await gas_station.close()


if __name__ == "__main__":
    asyncio.run(main())
