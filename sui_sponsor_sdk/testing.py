# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Test support: an in-process gas station for ``httpx.MockTransport``.

Only the ``Test`` classes import this module.
"""

import json
from typing import Dict, List

import httpx

from .transactions import TransactionData


class MockSponsor:
    """In-process gas station: a distinct gas coin per request."""

    OWNER = "0x" + "5" * 64

    def __init__(self, gas_status: int = 200):
        self.gas_status = gas_status
        self.issued: List[Dict] = []
        self.drafts: List[TransactionData] = []
        self.submitted: List[Dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.path == "/tx/gas":
            if self.gas_status != 200:
                return httpx.Response(self.gas_status, text="no gas coins available")
            self.drafts.append(TransactionData.from_b64(body["tx_data"]))
            gas_data = {
                "payment": [[hex(len(self.issued) + 10), 3, "d1"]],
                "owner": self.OWNER,
                "price": 1000,
                "budget": 5000000,
            }
            self.issued.append(gas_data)
            return httpx.Response(200, json={"gas_data": gas_data})

        self.submitted.append(body)
        response = {"digest": f"digest{len(self.submitted)}"}
        return httpx.Response(200, json={"response": response, "errors": []})


