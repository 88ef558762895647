# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Intent signing and the serialized Sui signature.

Sui never signs raw transaction bytes. The signer first prefixes them with an
*intent* (scope, version, app id) so a signature produced for a transaction
can not be replayed as a signature over some other kind of message, then
hashes the intent message with BLAKE2b-256 and signs the digest.

The resulting signature travels as ``flag || signature || public_key``,
base64 encoded, which is the layout full nodes and sponsors expect in the
``signature`` field of an execute request.

Examples:
    Verifying what a signer produced::

        sig = account.sign_transaction(builder)
        sig.verify(builder.build_finalized())  # True
"""

from __future__ import annotations

import base64
import hashlib
import unittest
from typing import Optional

from nacl.signing import VerifyKey

from . import ed25519
from .address import SignatureScheme, SuiAddress


class IntentScope:
    TransactionData: int = 0
    TransactionEffects: int = 1
    PersonalMessage: int = 3


class Intent:
    """Three-byte domain separator prefixed to every signed message."""

    scope: int
    version: int
    app_id: int

    def __init__(self, scope: int, version: int = 0, app_id: int = 0):
        self.scope = scope
        self.version = version
        self.app_id = app_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Intent):
            return NotImplemented
        return (
            self.scope == other.scope
            and self.version == other.version
            and self.app_id == other.app_id
        )

    @staticmethod
    def sui_transaction() -> Intent:
        return Intent(IntentScope.TransactionData)

    def to_bytes(self) -> bytes:
        return bytes([self.scope, self.version, self.app_id])

    def digest(self, message: bytes) -> bytes:
        """BLAKE2b-256 over ``intent || message``; this is what gets signed."""
        hasher = hashlib.blake2b(digest_size=32)
        hasher.update(self.to_bytes())
        hasher.update(message)
        return hasher.digest()


class SuiSignature:
    """A user signature in Sui wire format: scheme flag, signature, public key.

    Attributes:
        signature: The detached Ed25519 signature.
        public_key: Key that produced it.
        LENGTH: Serialized length (1 + 64 + 32).
    """

    LENGTH: int = 1 + ed25519.Signature.LENGTH + ed25519.PublicKey.LENGTH

    signature: ed25519.Signature
    public_key: ed25519.PublicKey

    def __init__(self, signature: ed25519.Signature, public_key: ed25519.PublicKey):
        self.signature = signature
        self.public_key = public_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SuiSignature):
            return NotImplemented
        return self.signature == other.signature and self.public_key == other.public_key

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __str__(self) -> str:
        return self.b64()

    def __repr__(self) -> str:
        return f"SuiSignature({self.b64()})"

    def to_bytes(self) -> bytes:
        return (
            SignatureScheme.Ed25519
            + self.signature.data()
            + self.public_key.to_crypto_bytes()
        )

    def b64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode()

    @staticmethod
    def from_bytes(data: bytes) -> SuiSignature:
        if len(data) != SuiSignature.LENGTH:
            raise ValueError(
                f"Expected a {SuiSignature.LENGTH} byte signature, got {len(data)}"
            )
        if data[0:1] != SignatureScheme.Ed25519:
            raise ValueError(f"Unsupported signature scheme flag {data[0]}")
        sig_end = 1 + ed25519.Signature.LENGTH
        return SuiSignature(
            ed25519.Signature(data[1:sig_end]),
            ed25519.PublicKey(VerifyKey(data[sig_end:])),
        )

    @staticmethod
    def from_b64(value: str) -> SuiSignature:
        return SuiSignature.from_bytes(base64.b64decode(value))

    def signer(self) -> SuiAddress:
        return SuiAddress.from_key(self.public_key)

    def verify(
        self, transaction_bytes: bytes, intent: Optional[Intent] = None
    ) -> bool:
        """Check this signature against the exact transaction bytes it should bind."""
        intent = intent or Intent.sui_transaction()
        return self.public_key.verify(intent.digest(transaction_bytes), self.signature)


class Test(unittest.TestCase):
    def test_intent_prefix(self):
        self.assertEqual(Intent.sui_transaction().to_bytes(), b"\x00\x00\x00")
        expected = hashlib.blake2b(b"\x00\x00\x00abc", digest_size=32).digest()
        self.assertEqual(Intent.sui_transaction().digest(b"abc"), expected)

    def test_round_trip_and_verify(self):
        key = ed25519.PrivateKey.random()
        tx_bytes = b"\x00\x01\x02"
        digest = Intent.sui_transaction().digest(tx_bytes)
        sig = SuiSignature(key.sign(digest), key.public_key())

        self.assertEqual(len(sig.to_bytes()), SuiSignature.LENGTH)
        self.assertEqual(sig.to_bytes()[0], 0)

        parsed = SuiSignature.from_b64(sig.b64())
        self.assertEqual(parsed, sig)
        self.assertTrue(parsed.verify(tx_bytes))
        self.assertFalse(parsed.verify(tx_bytes + b"\x00"))
        self.assertEqual(parsed.signer(), SuiAddress.from_key(key.public_key()))

    def test_rejects_other_schemes(self):
        with self.assertRaises(ValueError):
            SuiSignature.from_bytes(b"\x01" + b"\x00" * (SuiSignature.LENGTH - 1))
        with self.assertRaises(ValueError):
            SuiSignature.from_bytes(b"\x00" * 10)


if __name__ == "__main__":
    unittest.main()
