# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sponsored Transfer Example - one gasless send, step by step.

The sender owns no gas. The draft splits a coin off the gas coin and returns
it to the sender; the gas station supplies the gas coin, the owner, the price
and the budget, and broadcasts the result.

Workflow:
    1. Build the draft and serialize it without gas data
    2. Ask the gas station to sponsor it
    3. Merge the returned gas data into the draft
    4. Sign the finalized bytes with the sender key
    5. Submit the signed transaction through the gas station

Examples:
    Run against a local gas station::

        SUI_SPONSOR_URL=http://localhost:3000 SUI_SECRET_KEY=... \\
            python -m examples.sponsored_transfer
"""

import asyncio

from sui_sponsor_sdk.account import Account
from sui_sponsor_sdk.async_client import GasStationClient
from sui_sponsor_sdk.transactions import (
    SignedTransaction,
    TransactionBuilder,
    merge_gas_data,
)

from .common import SECRET_KEY, SPONSOR_URL


async def main():
    # :!:>section_1
    gas_station = GasStationClient(SPONSOR_URL)
    # <:!:section_1

    # :!:>section_2
    sender = Account.load_key(SECRET_KEY) if SECRET_KEY else Account.generate()
    # <:!:section_2

    print("\n=== Sender ===")
    print(f"Address: {sender.address()}")

    # :!:>section_3
    builder = TransactionBuilder()
    coin = builder.split_coins(builder.gas, [1_000])
    builder.transfer_objects([coin.nested(0)], sender.address())
    builder.set_sender(sender.address())
    # <:!:section_3

    # :!:>section_4
    gas = await gas_station.request_gas(builder.build_unsigned())
    merge_gas_data(builder, gas.gas_data)
    # <:!:section_4

    print("\n=== Gas Data ===")
    print(f"Owner: {gas.gas_data.owner}")
    print(f"Price: {gas.gas_data.price}")
    print(f"Budget: {gas.gas_data.budget}")
    print(f"Coins: {[str(coin.object_id) for coin in gas.gas_data.payment]}")

    # :!:>section_5
    signed = SignedTransaction(
        builder.build_finalized(),
        sender.sign_transaction(builder),
        gas.sponsor_signature,
    )
    result = await gas_station.submit(signed)
    # <:!:section_5

    print("\n=== Submission ===")
    print(f"Digest: {result.digest}")
    print(f"Status: {result.status}")
    if result.errors:
        print(f"Errors: {result.errors}")

    await gas_station.close()


if __name__ == "__main__":
    asyncio.run(main())
