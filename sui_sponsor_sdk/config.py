# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Configuration of a sponsored send pipeline.

:class:`SponsorConfig` is passed explicitly into the pipeline's entry point;
nothing in the package reads files or the environment on import. Two loaders
build one from the usual sources:

- :meth:`SponsorConfig.from_file` reads a JSON document such as::

      {
          "sponsorUrl": "http://127.0.0.1:4000",
          "rpcUrl": "https://fullnode.devnet.sui.io:443",
          "secretKey": "AK3ey..."
      }

- :meth:`SponsorConfig.from_env` reads ``SUI_SPONSOR_URL``,
  ``SUI_NETWORK_URL`` and ``SUI_SECRET_KEY``, plus optional tuning variables.
"""

from __future__ import annotations

import json
import os
import tempfile
import unittest
import unittest.mock
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .exceptions import ConfigError

# JSON keys accepted for each field, first match wins.
FILE_KEYS = {
    "sponsor_url": ("sponsorUrl", "sponsor_url"),
    "network_url": ("networkUrl", "rpcUrl", "network_url"),
    "secret_key": ("secretKey", "secret_key"),
    "gas_path": ("gasPath", "gas_path"),
    "submit_path": ("submitPath", "submit_path"),
    "batch_size": ("batchSize", "batch_size"),
    "batch_interval": ("batchInterval", "batch_interval"),
    "amount": ("amount",),
}

ENV_KEYS = {
    "sponsor_url": "SUI_SPONSOR_URL",
    "network_url": "SUI_NETWORK_URL",
    "secret_key": "SUI_SECRET_KEY",
    "gas_path": "SUI_SPONSOR_GAS_PATH",
    "submit_path": "SUI_SPONSOR_SUBMIT_PATH",
    "batch_size": "SUI_SPONSOR_BATCH_SIZE",
    "batch_interval": "SUI_SPONSOR_BATCH_INTERVAL",
    "amount": "SUI_SPONSOR_AMOUNT",
}


@dataclass
class SponsorConfig:
    """Inputs of the sponsored send pipeline.

    Attributes:
        sponsor_url: Gas station root URL.
        network_url: Sui full node JSON-RPC URL.
        secret_key: Sender secret, base64 ``flag || seed``. Never logged.
        gas_path: Gas request endpoint under ``sponsor_url``.
        submit_path: Submission endpoint under ``sponsor_url``.
        batch_size: Concurrent attempts per batch.
        batch_interval: Seconds between batches.
        amount: MIST split off the gas coin by a self-transfer.
    """

    sponsor_url: str
    network_url: str
    secret_key: str
    gas_path: str = "/tx/gas"
    submit_path: str = "/tx/submit"
    batch_size: int = 50
    batch_interval: float = 5.0
    amount: int = 1000

    def __repr__(self) -> str:
        return (
            f"SponsorConfig(sponsor_url={self.sponsor_url!r}, "
            f"network_url={self.network_url!r}, secret_key=<hidden>, "
            f"batch_size={self.batch_size}, batch_interval={self.batch_interval})"
        )

    @staticmethod
    def from_dict(values: Mapping[str, Any]) -> SponsorConfig:
        """Build a config from field names to raw values.

        Raises:
            ConfigError: If a required field is missing or a number is invalid.
        """
        missing = [
            name
            for name in ("sponsor_url", "network_url", "secret_key")
            if not values.get(name)
        ]
        if missing:
            raise ConfigError(f"Missing configuration: {', '.join(missing)}")

        kwargs: Dict[str, Any] = {
            name: value for name, value in values.items() if value is not None
        }
        try:
            if "batch_size" in kwargs:
                kwargs["batch_size"] = int(kwargs["batch_size"])
            if "batch_interval" in kwargs:
                kwargs["batch_interval"] = float(kwargs["batch_interval"])
            if "amount" in kwargs:
                kwargs["amount"] = int(kwargs["amount"])
        except ValueError as e:
            raise ConfigError(f"Invalid numeric configuration: {e}") from e

        if kwargs.get("batch_size", 1) < 1:
            raise ConfigError("batch_size must be positive")
        if kwargs.get("amount", 1) < 1:
            raise ConfigError("amount must be positive")
        return SponsorConfig(**kwargs)

    @staticmethod
    def from_file(path: str) -> SponsorConfig:
        try:
            with open(path) as file:
                data = json.load(file)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read configuration from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {path} must be a JSON object")

        values = {}
        for name, keys in FILE_KEYS.items():
            values[name] = next((data[key] for key in keys if key in data), None)
        return SponsorConfig.from_dict(values)

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> SponsorConfig:
        environ = os.environ if environ is None else environ
        values = {name: environ.get(key) or None for name, key in ENV_KEYS.items()}
        return SponsorConfig.from_dict(values)


class Test(unittest.TestCase):
    def write(self, data: Any) -> str:
        (file, path) = tempfile.mkstemp(suffix=".json")
        with os.fdopen(file, "w") as handle:
            json.dump(data, handle)
        return path

    def test_from_file(self):
        path = self.write(
            {
                "sponsorUrl": "http://127.0.0.1:4000",
                "rpcUrl": "http://127.0.0.1:9000",
                "secretKey": "AAAA",
                "batchSize": 10,
            }
        )
        config = SponsorConfig.from_file(path)
        self.assertEqual(config.sponsor_url, "http://127.0.0.1:4000")
        self.assertEqual(config.network_url, "http://127.0.0.1:9000")
        self.assertEqual(config.secret_key, "AAAA")
        self.assertEqual(config.batch_size, 10)
        self.assertEqual(config.batch_interval, 5.0)
        self.assertEqual(config.gas_path, "/tx/gas")

    def test_from_file_missing_fields(self):
        path = self.write({"sponsorUrl": "http://127.0.0.1:4000"})
        with self.assertRaises(ConfigError) as cm:
            SponsorConfig.from_file(path)
        self.assertIn("network_url, secret_key", str(cm.exception))

    def test_from_file_unreadable(self):
        with self.assertRaises(ConfigError):
            SponsorConfig.from_file("/nonexistent/config.json")
        with self.assertRaises(ConfigError):
            SponsorConfig.from_file(self.write(["not", "an", "object"]))

    def test_from_env(self):
        environ = {
            "SUI_SPONSOR_URL": "http://sponsor",
            "SUI_NETWORK_URL": "http://node",
            "SUI_SECRET_KEY": "AAAA",
            "SUI_SPONSOR_BATCH_INTERVAL": "0.5",
            "SUI_SPONSOR_GAS_PATH": "/gas/new",
        }
        config = SponsorConfig.from_env(environ)
        self.assertEqual(config.batch_interval, 0.5)
        self.assertEqual(config.gas_path, "/gas/new")
        self.assertEqual(config.amount, 1000)

        with unittest.mock.patch.dict(os.environ, environ, clear=True):
            self.assertEqual(SponsorConfig.from_env(), config)

    def test_invalid_numbers(self):
        base = {"sponsor_url": "a", "network_url": "b", "secret_key": "c"}
        with self.assertRaises(ConfigError):
            SponsorConfig.from_dict({**base, "batch_size": "many"})
        with self.assertRaises(ConfigError):
            SponsorConfig.from_dict({**base, "batch_size": 0})
        with self.assertRaises(ConfigError):
            SponsorConfig.from_dict({**base, "amount": -1})

    def test_repr_hides_secret(self):
        config = SponsorConfig("a", "b", "supersecret")
        self.assertNotIn("supersecret", repr(config))


if __name__ == "__main__":
    unittest.main()
