# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Asynchronous HTTP clients for a sponsored send.

- :class:`GasStationClient` talks to the sponsor: it ships the gasless draft to
  ``/tx/gas`` and receives gas data, then ships the signed transaction to
  ``/tx/submit`` for broadcast.
- :class:`FullnodeClient` talks JSON-RPC to a Sui full node directly, for
  callers that broadcast themselves or need the reference gas price.

Both clients are stateless across calls and safe to share between concurrent
send attempts; each owns one pooled ``httpx.AsyncClient``.

Examples:
    One sponsored round trip::

        gas_station = GasStationClient("http://127.0.0.1:4000")
        gas = await gas_station.request_gas(builder.build_unsigned())
        merge_gas_data(builder, gas.gas_data)

        signed = SignedTransaction(
            builder.build_finalized(),
            account.sign_transaction(builder),
            gas.sponsor_signature,
        )
        result = await gas_station.submit(signed)
        print(result.digest, result.errors)

        await gas_station.close()

Note:
    All client operations are async and must be awaited. Nothing here retries;
    retry policy belongs to the caller.
"""

from __future__ import annotations

import base64
import itertools
import json
import logging
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from .account import Account
from .address import SuiAddress
from .exceptions import (
    GasRequestFailed,
    IncompleteGasData,
    MalformedGasResponse,
    NetworkError,
    SponsorApiError,
    SubmissionFailed,
)
from .metadata import Metadata
from .transactions import (
    GasData,
    ObjectReference,
    SignedTransaction,
    TransactionBuilder,
    TransactionData,
    merge_gas_data,
)


@dataclass
class ClientConfig:
    """Common configuration for the HTTP clients.

    Attributes:
        http2: Negotiate HTTP/2 when the server supports it.
        timeout: Connect, read and write timeout in seconds. There is no pool
            timeout: a batch waits for a connection as long as progress is
            being made.
        api_key: Optional bearer token sent with every request.
    """

    http2: bool = True
    timeout: float = 60.0
    api_key: Optional[str] = None


def _http_client(
    client_config: ClientConfig, transport: Optional[httpx.AsyncBaseTransport]
) -> httpx.AsyncClient:
    headers = Metadata.headers()
    if client_config.api_key:
        headers["Authorization"] = f"Bearer {client_config.api_key}"
    return httpx.AsyncClient(
        http2=client_config.http2,
        limits=httpx.Limits(),
        timeout=httpx.Timeout(client_config.timeout, pool=None),
        headers=headers,
        transport=transport,
    )


class GasResponse:
    """What the gas station returned for one draft.

    Attributes:
        gas_data: Gas terms to merge into the draft.
        sponsor_signature: The sponsor's own signature over the draft, when the
            gas station co-signs up front. Forwarded untouched on submit.
    """

    gas_data: GasData
    sponsor_signature: Optional[Any]

    def __init__(self, gas_data: GasData, sponsor_signature: Optional[Any] = None):
        self.gas_data = gas_data
        self.sponsor_signature = sponsor_signature

    @staticmethod
    def from_json(body: Any) -> GasResponse:
        if not isinstance(body, dict) or "gas_data" not in body:
            raise MalformedGasResponse(
                f"Expected an object with gas_data, got {body!r}"
            )
        return GasResponse(GasData.from_json(body["gas_data"]), body.get("sig"))


class SubmissionResult:
    """Acknowledgment of a submitted transaction.

    ``raw`` is the transaction block response as reported by the sponsor or
    node; ``errors`` lists the failures the sponsor extracted from it.
    """

    raw: Dict[str, Any]
    errors: List[str]

    def __init__(self, raw: Dict[str, Any], errors: Optional[List[str]] = None):
        self.raw = raw
        self.errors = list(errors or [])

    def __str__(self) -> str:
        return f"SubmissionResult(digest={self.digest}, errors={self.errors})"

    @property
    def digest(self) -> Optional[str]:
        return self.raw.get("digest")

    @property
    def status(self) -> Optional[str]:
        effects = self.raw.get("effects") or {}
        return (effects.get("status") or {}).get("status")

    @property
    def succeeded(self) -> bool:
        return not self.errors and self.status != "failure"

    @staticmethod
    def from_json(body: Any) -> SubmissionResult:
        if isinstance(body, dict) and "response" in body:
            return SubmissionResult(body["response"] or {}, body.get("errors"))
        if isinstance(body, dict):
            return SubmissionResult(body)
        return SubmissionResult({"response": body})


class GasStationClient:
    """Client of a sponsor's gas station.

    Args:
        base_url: Sponsor root, e.g. ``"http://127.0.0.1:4000"``.
        client_config: HTTP tuning.
        gas_path: Gas request endpoint; older sponsors serve ``/gas/new``.
        submit_path: Submission endpoint.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in
            tests.
    """

    base_url: str
    client: httpx.AsyncClient
    client_config: ClientConfig
    gas_path: str
    submit_path: str

    def __init__(
        self,
        base_url: str,
        client_config: ClientConfig = ClientConfig(),
        gas_path: str = "/tx/gas",
        submit_path: str = "/tx/submit",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_config = client_config
        self.gas_path = gas_path
        self.submit_path = submit_path
        self.client = _http_client(client_config, transport)

    async def close(self):
        await self.client.aclose()

    async def request_gas(self, transaction: Union[bytes, str]) -> GasResponse:
        """Ask the sponsor to pick gas terms for a gasless draft.

        Args:
            transaction: ``build_unsigned()`` bytes, or their base64 encoding.

        Raises:
            GasRequestFailed: The sponsor answered with a non-2xx status.
            MalformedGasResponse: The body is not JSON or not the expected shape.
            IncompleteGasData: One of payment, owner, price or budget is absent.
            NetworkError: No response was received.
        """
        if isinstance(transaction, bytes):
            transaction = base64.b64encode(transaction).decode()

        response = await self._post(self.gas_path, {"tx_data": transaction})
        if response.status_code >= 300:
            raise GasRequestFailed(response.status_code, response.text)
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedGasResponse(
                f"Gas response is not JSON: {response.text}"
            ) from e

        gas = GasResponse.from_json(body)
        logging.debug(
            "Received gas data: %d payment object(s), budget %d",
            len(gas.gas_data.payment),
            gas.gas_data.budget,
        )
        return gas

    async def submit(self, signed_transaction: SignedTransaction) -> SubmissionResult:
        """Hand a signed transaction to the sponsor for broadcast.

        Raises:
            SubmissionFailed: Non-2xx status or a non-JSON acknowledgment.
            NetworkError: No response was received.
        """
        response = await self._post(self.submit_path, signed_transaction.to_json())
        if response.status_code >= 300:
            raise SubmissionFailed(response.status_code, response.text)
        try:
            body = response.json()
        except ValueError as e:
            raise SubmissionFailed(response.status_code, response.text) from e

        result = SubmissionResult.from_json(body)
        logging.info("Submitted transaction %s", result.digest)
        return result

    async def _post(self, path: str, data: Dict[str, Any]) -> httpx.Response:
        try:
            return await self.client.post(url=f"{self.base_url}{path}", json=data)
        except httpx.TransportError as e:
            raise NetworkError(f"POST {self.base_url}{path} failed: {e!r}") from e


class FullnodeClient:
    """Minimal JSON-RPC client of a Sui full node."""

    base_url: str
    client: httpx.AsyncClient
    client_config: ClientConfig

    def __init__(
        self,
        base_url: str,
        client_config: ClientConfig = ClientConfig(),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.client_config = client_config
        self.client = _http_client(client_config, transport)
        self._request_ids = itertools.count(1)

    async def close(self):
        await self.client.aclose()

    async def reference_gas_price(self) -> int:
        return int(await self._rpc("suix_getReferenceGasPrice", []))

    async def execute_transaction_block(
        self,
        signed_transaction: SignedTransaction,
        options: Optional[Dict[str, bool]] = None,
    ) -> SubmissionResult:
        """Broadcast directly to the network.

        The node requires every signature: the sender's and, for sponsored
        transactions, the gas owner's.

        Raises:
            SubmissionFailed: HTTP failure or a JSON-RPC error member.
            NetworkError: No response was received.
        """
        signatures = [signed_transaction.signature.b64()]
        if signed_transaction.sponsor_signature is not None:
            signatures.append(signed_transaction.sponsor_signature)

        result = await self._rpc(
            "sui_executeTransactionBlock",
            [
                signed_transaction.transaction_b64(),
                signatures,
                options or {"showEffects": True},
                "WaitForLocalExecution",
            ],
            SubmissionFailed,
        )
        return SubmissionResult(result)

    async def _rpc(
        self, method: str, params: List[Any], error: type = SponsorApiError
    ) -> Any:
        request = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            response = await self.client.post(self.base_url, json=request)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} failed: {e!r}") from e

        if response.status_code >= 400:
            raise error(response.status_code, response.text)
        try:
            body = response.json()
        except ValueError as e:
            raise error(response.status_code, response.text) from e
        if not isinstance(body, dict):
            raise error(response.status_code, response.text)
        if "error" in body:
            raise error(response.status_code, json.dumps(body["error"]))
        if "result" not in body:
            raise error(response.status_code, response.text)
        return body["result"]


class Test(unittest.IsolatedAsyncioTestCase):
    SPONSOR = "0x" + "7" * 64
    GAS_RESPONSE = {
        "gas_data": {
            "payment": [["0xA", 3, "d1"]],
            "owner": SPONSOR,
            "price": 1000,
            "budget": 5000000,
        }
    }

    def setUp(self):
        self.requests: List[httpx.Request] = []
        self.account = Account.generate()
        self.builder = TransactionBuilder()
        coin = self.builder.split_coins(self.builder.gas, [1000])
        self.builder.transfer_objects([coin.nested(0)], self.account.address())
        self.builder.set_sender(self.account.address())

    def gas_station(self, handler) -> GasStationClient:
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        return GasStationClient(
            "http://sponsor.test/", transport=httpx.MockTransport(record)
        )

    async def test_request_gas(self):
        client = self.gas_station(lambda r: httpx.Response(200, json=self.GAS_RESPONSE))
        gas = await client.request_gas(self.builder.build_unsigned())
        await client.close()

        self.assertEqual(str(self.requests[0].url), "http://sponsor.test/tx/gas")
        sent = json.loads(self.requests[0].content)
        self.assertEqual(
            base64.b64decode(sent["tx_data"]), self.builder.build_unsigned()
        )
        self.assertEqual(
            gas.gas_data.payment,
            [ObjectReference(SuiAddress.from_str("0xA"), 3, "d1")],
        )
        self.assertEqual(gas.gas_data.owner, SuiAddress.from_str(self.SPONSOR))
        self.assertEqual(gas.gas_data.price, 1000)
        self.assertEqual(gas.gas_data.budget, 5000000)
        self.assertIsNone(gas.sponsor_signature)

    async def test_request_gas_sends_headers(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(200, json=self.GAS_RESPONSE)

        client = GasStationClient(
            "http://sponsor.test",
            ClientConfig(api_key="secret"),
            transport=httpx.MockTransport(handler),
        )
        await client.request_gas("AAAA")
        await client.close()

        headers = self.requests[0].headers
        self.assertEqual(headers["Authorization"], "Bearer secret")
        self.assertEqual(headers[Metadata.SDK_TYPE_HEADER], Metadata.SDK_TYPE)

    async def test_request_gas_rejected(self):
        client = self.gas_station(lambda r: httpx.Response(503, text="pool empty"))
        with self.assertRaises(GasRequestFailed) as cm:
            await client.request_gas(b"\x00")
        await client.close()
        self.assertEqual(cm.exception.status_code, 503)
        self.assertEqual(cm.exception.body, "pool empty")

    async def test_malformed_payment_leaves_draft_untouched(self):
        body = {
            "gas_data": {
                "payment": [["0xA", 3]],
                "owner": self.SPONSOR,
                "price": 1000,
                "budget": 5000000,
            }
        }
        client = self.gas_station(lambda r: httpx.Response(200, json=body))
        with self.assertRaises(MalformedGasResponse):
            gas = await client.request_gas(self.builder.build_unsigned())
            merge_gas_data(self.builder, gas.gas_data)
        await client.close()
        self.assertEqual(len(self.builder.missing_gas_fields()), 4)

    async def test_non_json_gas_response(self):
        client = self.gas_station(lambda r: httpx.Response(200, text="<html>"))
        with self.assertRaises(MalformedGasResponse):
            await client.request_gas(b"\x00")
        await client.close()

    async def test_incomplete_gas_response(self):
        body = {"gas_data": {"payment": [["0xA", 3, "d1"]], "price": 1, "budget": 2}}
        client = self.gas_station(lambda r: httpx.Response(200, json=body))
        with self.assertRaises(IncompleteGasData) as cm:
            await client.request_gas(b"\x00")
        await client.close()
        self.assertEqual(cm.exception.missing, ["owner"])

    async def test_transport_error(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = self.gas_station(refuse)
        with self.assertRaises(NetworkError):
            await client.request_gas(b"\x00")
        await client.close()

    async def test_submit(self):
        gas = GasResponse.from_json({**self.GAS_RESPONSE, "sig": "c3BvbnNvcg=="})
        merge_gas_data(self.builder, gas.gas_data)
        signed = SignedTransaction(
            self.builder.build_finalized(),
            self.account.sign_transaction(self.builder),
            gas.sponsor_signature,
        )
        ack = {
            "response": {
                "digest": "5Vd6",
                "effects": {"status": {"status": "success"}},
            },
            "errors": [],
        }
        client = self.gas_station(lambda r: httpx.Response(200, json=ack))
        result = await client.submit(signed)
        await client.close()

        self.assertEqual(str(self.requests[0].url), "http://sponsor.test/tx/submit")
        sent = json.loads(self.requests[0].content)
        self.assertEqual(sent["transactionBlockBytes"], signed.transaction_b64())
        self.assertEqual(sent["signature"], signed.signature.b64())
        self.assertEqual(sent["sponsorSignature"], "c3BvbnNvcg==")
        self.assertEqual(result.digest, "5Vd6")
        self.assertTrue(result.succeeded)

        decoded = TransactionData.from_b64(sent["transactionBlockBytes"])
        self.assertEqual(decoded.gas_data, gas.gas_data)

    async def test_submit_reports_execution_errors(self):
        merge_gas_data(self.builder, GasData.from_json(self.GAS_RESPONSE["gas_data"]))
        signed = SignedTransaction(
            self.builder.build_finalized(), self.account.sign_transaction(self.builder)
        )
        ack = {
            "response": {
                "digest": "5Vd6",
                "effects": {"status": {"status": "failure"}},
            },
            "errors": ["InsufficientGas"],
        }
        client = self.gas_station(lambda r: httpx.Response(200, json=ack))
        result = await client.submit(signed)
        await client.close()

        self.assertNotIn("sponsorSignature", json.loads(self.requests[0].content))
        self.assertFalse(result.succeeded)
        self.assertEqual(result.errors, ["InsufficientGas"])

    async def test_submit_rejected(self):
        merge_gas_data(self.builder, GasData.from_json(self.GAS_RESPONSE["gas_data"]))
        signed = SignedTransaction(
            self.builder.build_finalized(), self.account.sign_transaction(self.builder)
        )
        client = self.gas_station(lambda r: httpx.Response(400, text="bad signature"))
        with self.assertRaises(SubmissionFailed) as cm:
            await client.submit(signed)
        await client.close()
        self.assertEqual(cm.exception.status_code, 400)

    async def test_fullnode(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            body = json.loads(request.content)
            if body["method"] == "suix_getReferenceGasPrice":
                return httpx.Response(
                    200, json={"jsonrpc": "2.0", "id": body["id"], "result": "750"}
                )
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": body["id"],
                    "error": {"code": -32002, "message": "Invalid user signature"},
                },
            )

        client = FullnodeClient(
            "http://fullnode.test", transport=httpx.MockTransport(handler)
        )
        self.assertEqual(await client.reference_gas_price(), 750)

        merge_gas_data(self.builder, GasData.from_json(self.GAS_RESPONSE["gas_data"]))
        signed = SignedTransaction(
            self.builder.build_finalized(),
            self.account.sign_transaction(self.builder),
            "c3BvbnNvcg==",
        )
        with self.assertRaises(SubmissionFailed):
            await client.execute_transaction_block(signed)
        await client.close()

        params = json.loads(self.requests[1].content)["params"]
        self.assertEqual(params[1], [signed.signature.b64(), "c3BvbnNvcg=="])

    async def test_fullnode_unexpected_body(self):
        for body in ([1, 2], {"jsonrpc": "2.0", "id": 1}):
            client = FullnodeClient(
                "http://fullnode.test",
                transport=httpx.MockTransport(
                    lambda r, body=body: httpx.Response(200, json=body)
                ),
            )
            with self.assertRaises(SponsorApiError) as cm:
                await client.reference_gas_price()
            await client.close()
            self.assertEqual(cm.exception.status_code, 200)


if __name__ == "__main__":
    unittest.main()
