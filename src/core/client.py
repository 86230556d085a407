"""
Solana RPC transport used by the send pipeline.

Read calls go through solana-py's AsyncClient; simulateTransaction and
sendTransaction are posted as raw JSON-RPC so the replaceRecentBlockhash,
minContextSlot and maxRetries options can be set.
"""

import asyncio
import base64
import itertools
import json
import os
from typing import Any

import aiohttp
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from pipeline.errors import SubmissionRejected, TransportError
from pipeline.types import Blockhash, ConfirmationStatus, SignatureStatus, SimulationOutcome
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_RPC_ENDPOINT = "https://api.mainnet-beta.solana.com"
REQUEST_TIMEOUT = 10.0

_CONFIRMATION_STATUS = (
    (TransactionConfirmationStatus.Finalized, ConfirmationStatus.FINALIZED),
    (TransactionConfirmationStatus.Confirmed, ConfirmationStatus.CONFIRMED),
    (TransactionConfirmationStatus.Processed, ConfirmationStatus.PROCESSED),
)

_CLIENT_ERRORS = (SolanaRpcException, RPCException, aiohttp.ClientError, asyncio.TimeoutError)


class SolanaClient:
    """Abstraction for Solana RPC client operations."""

    def __init__(self, rpc_endpoint: str | None = None, timeout: float = REQUEST_TIMEOUT):
        """Initialize Solana client with RPC endpoint.

        Args:
            rpc_endpoint: URL of the Solana RPC endpoint; defaults to
                SOLANA_NODE_RPC_ENDPOINT
            timeout: Per-request timeout in seconds
        """
        self.rpc_endpoint = rpc_endpoint or os.getenv("SOLANA_NODE_RPC_ENDPOINT") or DEFAULT_RPC_ENDPOINT
        self.timeout = timeout
        self._client: AsyncClient | None = None
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> "SolanaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def get_client(self) -> AsyncClient:
        """Get or create the AsyncClient instance."""
        if self._client is None:
            self._client = AsyncClient(self.rpc_endpoint, timeout=self.timeout)
        return self._client

    async def close(self):
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def get_balance(self, pubkey: Pubkey, commitment: str) -> int:
        """Lamport balance of `pubkey`."""
        client = await self.get_client()
        try:
            response = await client.get_balance(pubkey, commitment=commitment)
        except _CLIENT_ERRORS as e:
            raise TransportError(f"getBalance failed: {e}") from e
        return response.value

    async def get_latest_blockhash(self, commitment: str) -> Blockhash:
        """Latest blockhash together with the slot it was read at."""
        client = await self.get_client()
        try:
            response = await client.get_latest_blockhash(commitment=commitment)
        except _CLIENT_ERRORS as e:
            raise TransportError(f"getLatestBlockhash failed: {e}") from e
        return Blockhash(
            hash=response.value.blockhash,
            slot=response.context.slot,
            last_valid_block_height=response.value.last_valid_block_height,
        )

    async def simulate_transaction(self, tx: Transaction, commitment: str) -> SimulationOutcome:
        """Simulate `tx` with signature checks off and the blockhash replaced."""
        result = await self._call(
            "simulateTransaction",
            [
                _encode(tx),
                {
                    "sigVerify": False,
                    "replaceRecentBlockhash": True,
                    "commitment": commitment,
                    "encoding": "base64",
                },
            ],
        )
        if not isinstance(result, dict) or not isinstance(result.get("value"), dict):
            raise TransportError(f"Malformed simulateTransaction result: {result!r}")
        value = result["value"]
        return SimulationOutcome(
            err=value.get("err"),
            units_consumed=value.get("unitsConsumed"),
            logs=value.get("logs") or [],
        )

    async def send_transaction(
        self,
        tx: Transaction,
        preflight_commitment: str,
        min_context_slot: int,
        max_retries: int = 0,
    ) -> Signature:
        """Send a signed transaction with preflight disabled.

        Raises:
            SubmissionRejected: If the node answers with a JSON-RPC error
            TransportError: If the request itself fails
        """
        try:
            result = await self._call(
                "sendTransaction",
                [
                    _encode(tx),
                    {
                        "skipPreflight": True,
                        "preflightCommitment": preflight_commitment,
                        "encoding": "base64",
                        "maxRetries": max_retries,
                        "minContextSlot": min_context_slot,
                    },
                ],
            )
        except _RpcErrorResponse as e:
            raise SubmissionRejected(e.message, e.code) from None
        if not isinstance(result, str):
            raise TransportError(f"sendTransaction returned no signature: {result!r}")
        try:
            return Signature.from_string(result)
        except ValueError as e:
            raise TransportError(f"sendTransaction returned an invalid signature: {result!r}") from e

    async def get_signature_status(self, signature: Signature) -> SignatureStatus:
        """Current confirmation status of `signature`."""
        client = await self.get_client()
        try:
            response = await client.get_signature_statuses([signature])
        except _CLIENT_ERRORS as e:
            raise TransportError(f"getSignatureStatuses failed: {e}") from e

        if response.value is None or len(response.value) != 1:
            raise TransportError(f"getSignatureStatuses returned {response.value!r} for one signature")
        status = response.value[0]
        if status is None:
            return SignatureStatus.unseen()
        # A status entry without confirmation_status has at least been processed
        confirmation = next(
            (ours for theirs, ours in _CONFIRMATION_STATUS if status.confirmation_status == theirs),
            ConfirmationStatus.PROCESSED,
        )
        return SignatureStatus(status=confirmation, err=status.err, slot=status.slot)

    async def _call(self, method: str, params: list[Any]) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        response = await self.post_rpc(body)
        if "error" in response:
            error = response["error"] or {}
            raise _RpcErrorResponse(method, error.get("code"), error.get("message", str(error)))
        return response.get("result")

    async def post_rpc(self, body: dict[str, Any]) -> dict[str, Any]:
        """
        Send a raw RPC request to the Solana node.

        Args:
            body: JSON-RPC request body.

        Returns:
            Parsed JSON response.

        Raises:
            TransportError: If the request fails or the response is not JSON
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.rpc_endpoint,
                    json=body,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    response.raise_for_status()
                    return await response.json()
        except _CLIENT_ERRORS as e:
            raise TransportError(f"{body.get('method')} request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise TransportError(f"Failed to decode {body.get('method')} response: {e}") from e


class _RpcErrorResponse(TransportError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, method: str, code: int | None, message: str):
        super().__init__(f"{method} error {code}: {message}")
        self.code = code
        self.message = message


def _encode(tx: Transaction) -> str:
    return base64.b64encode(bytes(tx)).decode("ascii")
