# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
One sponsored send attempt, from draft to broadcast.

An attempt walks a fixed sequence of states::

    BUILDING -> AWAITING_GAS -> GAS_RECEIVED -> FINALIZED -> SIGNED -> SUBMITTED

Any error moves it to ``FAILED`` and is re-raised to the caller. Attempts are
single use: a failed attempt is abandoned, and retrying means building a new
draft and a new :class:`SponsoredTransaction`.

Nothing mutable is shared between attempts. The account and the gas station
client may be shared freely; the draft must not be.
"""

from __future__ import annotations

import asyncio
import logging
import unittest
import unittest.mock
from enum import Enum
from typing import Optional

import httpx

from .account import Account
from .address import SuiAddress
from .async_client import GasResponse, GasStationClient, SubmissionResult
from .bcs import Deserializer
from .exceptions import GasRequestFailed, MalformedGasResponse, SponsorError
from .transactions import (
    GasData,
    ObjectReference,
    SignedTransaction,
    TransactionBuilder,
    TransactionData,
    merge_gas_data,
)


class AttemptState(Enum):
    BUILDING = "building"
    AWAITING_GAS = "awaiting_gas"
    GAS_RECEIVED = "gas_received"
    FINALIZED = "finalized"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    FAILED = "failed"


class SponsoredTransaction:
    """Drive one draft through gas request, merge, signing and submission.

    Attributes:
        state: Current :class:`AttemptState`.
        failure: The error that ended the attempt, if it failed.
        failed_in: The state the attempt was in when it failed.
        gas: The sponsor's answer, once received.
        signed_transaction: What was handed to the sponsor, once signed.
        result: The sponsor's acknowledgment, once submitted.
    """

    builder: TransactionBuilder
    account: Account
    gas_station: GasStationClient
    state: AttemptState
    failure: Optional[Exception]
    failed_in: Optional[AttemptState]
    gas: Optional[GasResponse]
    signed_transaction: Optional[SignedTransaction]
    result: Optional[SubmissionResult]

    def __init__(
        self,
        builder: TransactionBuilder,
        account: Account,
        gas_station: GasStationClient,
    ):
        self.builder = builder
        self.account = account
        self.gas_station = gas_station
        self.state = AttemptState.BUILDING
        self.failure = None
        self.failed_in = None
        self.gas = None
        self.signed_transaction = None
        self.result = None

    def __str__(self) -> str:
        return f"SponsoredTransaction({self.account.address()}, {self.state.value})"

    @staticmethod
    def transfer_to_self(
        account: Account, gas_station: GasStationClient, amount: int
    ) -> SponsoredTransaction:
        """Split ``amount`` off the gas coin and send it back to ``account``."""
        builder = TransactionBuilder()
        coin = builder.split_coins(builder.gas, [amount])
        builder.transfer_objects([coin.nested(0)], account.address())
        builder.set_sender(account.address())
        return SponsoredTransaction(builder, account, gas_station)

    async def execute(self) -> SubmissionResult:
        """Run the attempt to completion.

        Raises:
            SponsorError: If the attempt was already executed, or whatever
                error ended it (the attempt is ``FAILED`` afterwards).
        """
        if self.state != AttemptState.BUILDING:
            raise SponsorError(
                f"Attempt is {self.state.value}; start a new attempt instead"
            )

        try:
            unsigned = self.builder.build_unsigned()
            self.state = AttemptState.AWAITING_GAS
            self.gas = await self.gas_station.request_gas(unsigned)
            self.state = AttemptState.GAS_RECEIVED

            merge_gas_data(self.builder, self.gas.gas_data)
            finalized = self.builder.build_finalized()
            self.state = AttemptState.FINALIZED

            self.signed_transaction = SignedTransaction(
                finalized,
                self.account.sign_transaction(self.builder),
                self.gas.sponsor_signature,
            )
            self.state = AttemptState.SIGNED

            self.result = await self.gas_station.submit(self.signed_transaction)
            self.state = AttemptState.SUBMITTED
        except Exception as e:
            self.failed_in = self.state
            self.failure = e
            self.state = AttemptState.FAILED
            logging.debug("Attempt failed while %s: %s", self.failed_in.value, e)
            raise

        return self.result


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        from .testing import MockSponsor

        self.account = Account.generate()
        self.sponsor = MockSponsor()
        self.gas_station = GasStationClient(
            "http://127.0.0.1:4000", transport=httpx.MockTransport(self.sponsor)
        )

    async def asyncTearDown(self):
        await self.gas_station.close()

    async def test_transfer_to_self(self):
        attempt = SponsoredTransaction.transfer_to_self(
            self.account, self.gas_station, 1000
        )
        result = await attempt.execute()

        self.assertEqual(attempt.state, AttemptState.SUBMITTED)
        self.assertEqual(result.digest, "digest1")

        # The sponsor saw placeholders, not gas terms.
        draft = self.sponsor.drafts[0]
        self.assertEqual(draft.gas_data, GasData([], self.account.address(), 0, 0))

        builder = attempt.builder
        self.assertEqual(
            builder.gas_payment,
            [ObjectReference(SuiAddress.from_str("0xA"), 3, "d1")],
        )
        self.assertEqual(builder.gas_owner, SuiAddress.from_str(self.sponsor.OWNER))
        self.assertEqual(builder.gas_price, 1000)
        self.assertEqual(builder.gas_budget, 5000000)

        signed = attempt.signed_transaction
        self.assertEqual(signed.transaction_bytes, builder.build_finalized())
        self.assertTrue(signed.verify())
        self.assertEqual(
            self.sponsor.submitted[0],
            {
                "transactionBlockBytes": signed.transaction_b64(),
                "signature": signed.signature.b64(),
            },
        )

    async def test_gas_request_failure(self):
        self.sponsor.gas_status = 503
        attempt = SponsoredTransaction.transfer_to_self(
            self.account, self.gas_station, 1000
        )
        with self.assertRaises(GasRequestFailed):
            await attempt.execute()

        self.assertEqual(attempt.state, AttemptState.FAILED)
        self.assertEqual(attempt.failed_in, AttemptState.AWAITING_GAS)
        self.assertIsInstance(attempt.failure, GasRequestFailed)
        self.assertIsNone(attempt.signed_transaction)
        self.assertEqual(self.sponsor.submitted, [])

        with self.assertRaises(SponsorError):
            await attempt.execute()

    async def test_malformed_gas_never_signs(self):
        def handler(request: httpx.Request) -> httpx.Response:
            gas_data = {
                "payment": [["0x1", 3]],
                "owner": "0x5",
                "price": 1,
                "budget": 1,
            }
            return httpx.Response(200, json={"gas_data": gas_data})

        gas_station = GasStationClient(
            "http://127.0.0.1:4000", transport=httpx.MockTransport(handler)
        )
        attempt = SponsoredTransaction.transfer_to_self(self.account, gas_station, 1)
        with unittest.mock.patch.object(Account, "sign_transaction") as sign:
            with self.assertRaises(MalformedGasResponse):
                await attempt.execute()
            sign.assert_not_called()
        await gas_station.close()

        self.assertEqual(attempt.failed_in, AttemptState.AWAITING_GAS)
        self.assertEqual(len(attempt.builder.missing_gas_fields()), 4)

    async def test_single_use(self):
        attempt = SponsoredTransaction.transfer_to_self(
            self.account, self.gas_station, 1000
        )
        await attempt.execute()
        with self.assertRaises(SponsorError):
            await attempt.execute()
        self.assertEqual(len(self.sponsor.submitted), 1)

    async def test_concurrent_attempts(self):
        attempts = [
            SponsoredTransaction.transfer_to_self(self.account, self.gas_station, 1000)
            for _ in range(50)
        ]
        results = await asyncio.gather(*(attempt.execute() for attempt in attempts))

        self.assertEqual(len(results), 50)
        self.assertEqual(len(self.sponsor.submitted), 50)
        signatures = {body["signature"] for body in self.sponsor.submitted}
        self.assertEqual(len(signatures), 50)

        for attempt in attempts:
            finalized = TransactionData.deserialize(
                Deserializer(attempt.signed_transaction.transaction_bytes)
            )
            self.assertEqual(finalized.gas_data, attempt.gas.gas_data)

        coins = [
            str(attempt.builder.gas_payment[0].object_id) for attempt in attempts
        ]
        self.assertEqual(len(set(coins)), 50)


if __name__ == "__main__":
    unittest.main()
