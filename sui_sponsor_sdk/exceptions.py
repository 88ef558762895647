# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from typing import Optional


class SponsorError(Exception):
    """Base class for every failure of a sponsored send attempt."""


class InvalidAmount(SponsorError):
    """A coin split was asked for an amount outside 1 to 2**64 - 1."""

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Split amounts must be positive u64 integers, got {amount!r}")


class EmptyTransferSet(SponsorError):
    """A transfer was requested with no objects to transfer."""

    def __init__(self):
        super().__init__("TransferObjects requires at least one object")


class IncompleteTransaction(SponsorError):
    """The draft lacks a slot required for the requested serialization."""

    message = "Transaction is missing"

    def __init__(self, missing: list):
        self.missing = list(missing)
        super().__init__(f"{self.message}: {', '.join(self.missing)}")


class PrematureSign(IncompleteTransaction):
    """Signing was attempted before the sponsor's gas data was merged."""

    message = "Cannot sign before gas data is merged, missing"


class MalformedGasResponse(SponsorError):
    """The gas station answered with a body that does not match the wire contract."""


class IncompleteGasData(SponsorError):
    """The gas station omitted one of payment, owner, price or budget."""

    def __init__(self, missing: list):
        self.missing = list(missing)
        super().__init__(f"Gas data is missing: {', '.join(self.missing)}")


class SponsorApiError(SponsorError):
    """The sponsor or network returned a non-success status code."""

    status_code: Optional[int]
    body: str

    def __init__(self, status_code: Optional[int], body: str):
        super().__init__(f"{type(self).__name__} ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class GasRequestFailed(SponsorApiError):
    """The gas request was rejected by the sponsor."""


class SubmissionFailed(SponsorApiError):
    """The signed transaction was rejected by the sponsor or the network."""


class NetworkError(SponsorError):
    """The request never produced an HTTP response."""


class ConfigError(SponsorError):
    """Configuration is missing a required field or cannot be read."""
