# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Batch driver for many concurrent sponsored sends.

The worker issues ``batch_size`` independent attempts at once, waits for the
whole batch to settle, reports it, sleeps ``interval`` seconds and starts the
next batch. Backpressure is per batch: a slow attempt holds back the next
batch, never its siblings. Failed attempts are logged and counted, never
retried and never escalated.

Examples:
    Fifty sponsored self-transfers every five seconds, forever::

        account = Account.load_key(config.secret_key)
        gas_station = GasStationClient(config.sponsor_url)
        worker = TransactionWorker(
            lambda: SponsoredTransaction.transfer_to_self(account, gas_station, 1000),
            batch_size=50,
            interval=5.0,
        )
        await worker.run()
"""

import asyncio
import logging
import typing
import unittest

import httpx

from .account import Account
from .async_client import GasStationClient, SubmissionResult
from .exceptions import GasRequestFailed
from .sponsored_transaction import SponsoredTransaction


class BatchReport:
    """Outcome of one batch.

    Attributes:
        batch: Zero-based batch number.
        results: Acknowledgments of submitted attempts.
        errors: Errors that ended the other attempts.
    """

    batch: int
    results: typing.List[SubmissionResult]
    errors: typing.List[BaseException]

    def __init__(
        self,
        batch: int,
        results: typing.List[SubmissionResult],
        errors: typing.List[BaseException],
    ):
        self.batch = batch
        self.results = results
        self.errors = errors

    def __str__(self) -> str:
        return (
            f"Batch {self.batch}: {self.succeeded} succeeded, {self.failed} failed"
        )

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.succeeded)

    @property
    def failed(self) -> int:
        return len(self.errors) + len(self.results) - self.succeeded


class TransactionWorker:
    """Fan out sponsored send attempts in fixed-size batches.

    Args:
        attempt_factory: Builds a fresh :class:`SponsoredTransaction` per call.
            Attempts must not share drafts.
        batch_size: Attempts issued concurrently per batch.
        interval: Quiescent seconds between batches.
        on_report: Called with every :class:`BatchReport`.
    """

    _attempt_factory: typing.Callable[[], SponsoredTransaction]
    _on_report: typing.Optional[typing.Callable[[BatchReport], None]]
    _stopped: bool
    batch_size: int
    interval: float
    batches_run: int
    succeeded: int
    failed: int

    def __init__(
        self,
        attempt_factory: typing.Callable[[], SponsoredTransaction],
        batch_size: int = 50,
        interval: float = 5.0,
        on_report: typing.Optional[typing.Callable[[BatchReport], None]] = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._attempt_factory = attempt_factory
        self._on_report = on_report
        self._stopped = False
        self.batch_size = batch_size
        self.interval = interval
        self.batches_run = 0
        self.succeeded = 0
        self.failed = 0

    def stop(self):
        """Finish the batch in flight, then return from :meth:`run`."""
        self._stopped = True

    async def _run_attempt(self) -> SubmissionResult:
        attempt = self._attempt_factory()
        return await attempt.execute()

    async def run_batch(self) -> BatchReport:
        outputs = await asyncio.gather(
            *(self._run_attempt() for _ in range(self.batch_size)),
            return_exceptions=True,
        )

        results = []
        errors = []
        for output in outputs:
            if isinstance(output, BaseException):
                logging.error(output, exc_info=output)
                errors.append(output)
            else:
                if not output.succeeded:
                    logging.error(
                        "Transaction %s failed: %s", output.digest, output.errors
                    )
                results.append(output)

        report = BatchReport(self.batches_run, results, errors)
        self.batches_run += 1
        self.succeeded += report.succeeded
        self.failed += report.failed
        logging.info(str(report))
        if self._on_report:
            self._on_report(report)
        return report

    async def run(self, batches: typing.Optional[int] = None):
        """Run ``batches`` batches, or until :meth:`stop` when ``batches`` is None."""
        self._stopped = False
        remaining = batches
        while not self._stopped and (remaining is None or remaining > 0):
            await self.run_batch()
            if remaining is not None:
                remaining -= 1
            if self._stopped or remaining == 0:
                break
            await asyncio.sleep(self.interval)


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

    def attempt(self) -> SponsoredTransaction:
        return SponsoredTransaction.transfer_to_self(
            self.account, self.gas_station, 1000
        )

    async def test_batches(self):
        reports = []
        worker = TransactionWorker(
            self.attempt, batch_size=5, interval=0, on_report=reports.append
        )
        await worker.run(batches=2)

        self.assertEqual(worker.batches_run, 2)
        self.assertEqual([report.batch for report in reports], [0, 1])
        self.assertEqual(worker.succeeded, 10)
        self.assertEqual(worker.failed, 0)
        self.assertEqual(len(self.sponsor.submitted), 10)
        self.assertEqual(
            len({body["signature"] for body in self.sponsor.submitted}), 10
        )

    async def test_failures_do_not_stop_the_loop(self):
        self.sponsor.gas_status = 500
        worker = TransactionWorker(self.attempt, batch_size=3, interval=0)
        with self.assertLogs(level="ERROR") as logs:
            await worker.run(batches=2)

        self.assertEqual(worker.batches_run, 2)
        self.assertEqual(worker.failed, 6)
        self.assertEqual(len(logs.records), 6)
        self.assertEqual(self.sponsor.submitted, [])

    async def test_run_batch_collects_errors(self):
        self.sponsor.gas_status = 503
        worker = TransactionWorker(self.attempt, batch_size=2, interval=0)
        with self.assertLogs(level="ERROR"):
            report = await worker.run_batch()
        self.assertEqual(report.succeeded, 0)
        self.assertTrue(all(isinstance(e, GasRequestFailed) for e in report.errors))

    async def test_factory_errors_are_counted(self):
        calls = []

        def flaky() -> SponsoredTransaction:
            calls.append(None)
            if len(calls) % 2 == 0:
                raise ValueError("no recipient")
            return self.attempt()

        worker = TransactionWorker(flaky, batch_size=4, interval=0)
        with self.assertLogs(level="ERROR") as logs:
            await worker.run(batches=2)

        self.assertEqual(worker.batches_run, 2)
        self.assertEqual(worker.succeeded, 4)
        self.assertEqual(worker.failed, 4)
        self.assertEqual(len(logs.records), 4)
        self.assertEqual(len(self.sponsor.submitted), 4)

    async def test_stop(self):
        def stop_after_three(report: BatchReport):
            if report.batch == 2:
                worker.stop()

        worker = TransactionWorker(
            self.attempt, batch_size=1, interval=0, on_report=stop_after_three
        )
        await worker.run()
        self.assertEqual(worker.batches_run, 3)

    def test_batch_size(self):
        with self.assertRaises(ValueError):
            TransactionWorker(self.attempt, batch_size=0)


if __name__ == "__main__":
    unittest.main()
