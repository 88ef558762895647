# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sui Sponsor SDK - client side of sponsored (gasless) Sui transactions.

A sponsored send lets a user transact without owning gas: a third-party gas
station picks the gas coins, owner, price and budget, and the user signs a
transaction that binds exactly those terms.

Protocol:
    1. Build a programmable transaction and set its sender
       (:class:`~sui_sponsor_sdk.transactions.TransactionBuilder`).
    2. Send the gasless encoding to the gas station
       (:meth:`~sui_sponsor_sdk.async_client.GasStationClient.request_gas`).
    3. Merge the returned gas data into the draft
       (:func:`~sui_sponsor_sdk.transactions.merge_gas_data`).
    4. Sign the finalized encoding
       (:meth:`~sui_sponsor_sdk.account.Account.sign_transaction`).
    5. Hand the signed transaction to the sponsor for broadcast
       (:meth:`~sui_sponsor_sdk.async_client.GasStationClient.submit`).

:class:`~sui_sponsor_sdk.sponsored_transaction.SponsoredTransaction` runs one
attempt through all five steps, and
:class:`~sui_sponsor_sdk.transaction_worker.TransactionWorker` fans attempts
out in batches.

Modules:
- **bcs**: Canonical binary encoding
- **address**: 32-byte account addresses and object ids
- **ed25519** / **authenticator**: Keys, intent signing, wire signatures
- **account**: Keypair loaded from a base64 secret
- **transactions**: Draft, object references, gas data, signed envelope
- **async_client**: Gas station and full node clients (httpx)
- **sponsored_transaction**: One send attempt as a state machine
- **transaction_worker**: Batched concurrent attempts
- **config**: Injected pipeline configuration
- **exceptions**: Error taxonomy
- **cli**: ``send`` / ``load`` / ``gas-price`` commands

Quick Start:
    One sponsored self-transfer::

        import asyncio
        from sui_sponsor_sdk.account import Account
        from sui_sponsor_sdk.async_client import GasStationClient
        from sui_sponsor_sdk.config import SponsorConfig
        from sui_sponsor_sdk.sponsored_transaction import SponsoredTransaction

        async def main():
            config = SponsorConfig.from_file(".config.json")
            account = Account.load_key(config.secret_key)
            gas_station = GasStationClient(config.sponsor_url)

            attempt = SponsoredTransaction.transfer_to_self(
                account, gas_station, config.amount
            )
            result = await attempt.execute()
            print(result.digest, result.errors)

            await gas_station.close()

        asyncio.run(main())

Error Handling:
    Every failure derives from :class:`~sui_sponsor_sdk.exceptions.SponsorError`
    and aborts its attempt. Nothing is retried; a new attempt starts from a
    new draft.
"""
