# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Ed25519 keys and signatures.

Thin wrappers around PyNaCl's :class:`~nacl.signing.SigningKey` and
:class:`~nacl.signing.VerifyKey`. The cryptography itself is delegated to
NaCl; this module only fixes the byte layouts Sui expects.

Examples:
    Signing and verifying::

        private_key = PrivateKey.random()
        signature = private_key.sign(b"message")
        private_key.public_key().verify(b"message", signature)  # True
"""

from __future__ import annotations

import base64
import unittest

from nacl.signing import SigningKey, VerifyKey

from .bcs import Deserializer, Serializer


class PrivateKey:
    """Ed25519 private key (32-byte seed).

    Attributes:
        LENGTH: Seed length in bytes (32).
        key: The wrapped NaCl signing key.
    """

    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __repr__(self):
        # Never render key material.
        return f"PrivateKey(public_key={self.public_key()})"

    @staticmethod
    def from_bytes(seed: bytes) -> PrivateKey:
        """Build a key from its raw 32-byte seed.

        Raises:
            ValueError: If ``seed`` is not exactly 32 bytes.
        """
        if len(seed) != PrivateKey.LENGTH:
            raise ValueError(
                f"Expected a {PrivateKey.LENGTH} byte Ed25519 seed, got {len(seed)}"
            )
        return PrivateKey(SigningKey(seed))

    @staticmethod
    def from_hex(value: str) -> PrivateKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PrivateKey.from_bytes(bytes.fromhex(value))

    def hex(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verify_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate())

    def sign(self, data: bytes) -> Signature:
        """Sign ``data`` and return the detached 64-byte signature."""
        return Signature(self.key.sign(data).signature)


class PublicKey:
    """Ed25519 public key (32 bytes)."""

    LENGTH: int = 32

    key: VerifyKey

    def __init__(self, key: VerifyKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self) -> str:
        return f"0x{self.key.encode().hex()}"

    @staticmethod
    def from_str(value: str) -> PublicKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PublicKey(VerifyKey(bytes.fromhex(value)))

    def verify(self, data: bytes, signature: Signature) -> bool:
        """Return True when ``signature`` is valid for ``data`` under this key."""
        try:
            self.key.verify(data, signature.data())
        except Exception:
            return False
        return True

    def to_crypto_bytes(self) -> bytes:
        return self.key.encode()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        key = deserializer.to_bytes()
        if len(key) != PublicKey.LENGTH:
            raise Exception("Length mismatch")

        return PublicKey(VerifyKey(key))

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class Signature:
    """Detached Ed25519 signature (64 bytes)."""

    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __hash__(self) -> int:
        return hash(self.signature)

    def __str__(self) -> str:
        return f"0x{self.signature.hex()}"

    def data(self) -> bytes:
        return self.signature

    def b64(self) -> str:
        return base64.b64encode(self.signature).decode()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        signature = deserializer.to_bytes()
        if len(signature) != Signature.LENGTH:
            raise Exception("Length mismatch")

        return Signature(signature)

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.signature)


class Test(unittest.TestCase):
    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertTrue(public_key.verify(in_value, signature))
        self.assertFalse(public_key.verify(b"other_message", signature))
        self.assertEqual(len(signature.data()), Signature.LENGTH)

    def test_seed_round_trip(self):
        private_key = PrivateKey.random()
        restored = PrivateKey.from_hex(private_key.hex())
        self.assertEqual(private_key, restored)
        self.assertEqual(private_key.public_key(), restored.public_key())

    def test_seed_length(self):
        with self.assertRaises(ValueError):
            PrivateKey.from_bytes(b"\x01" * 31)

    def test_repr_hides_seed(self):
        private_key = PrivateKey.random()
        self.assertNotIn(private_key.hex()[2:], repr(private_key))

    def test_signature_serialization(self):
        signature = PrivateKey.random().sign(b"abc")

        ser = Serializer()
        signature.serialize(ser)
        self.assertEqual(Signature.deserialize(Deserializer(ser.output())), signature)


if __name__ == "__main__":
    unittest.main()
