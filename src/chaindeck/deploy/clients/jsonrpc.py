"""Ethereum JSON-RPC chain client.

Transactions are submitted with ``eth_sendTransaction``; signing is left to
the node or to a signing proxy in front of it (e.g. a custody provider's
JSON-RPC gateway).
"""

from __future__ import annotations

import contextlib
import itertools
import logging
import time
from collections.abc import Sequence
from typing import Any

import requests
from eth_utils import is_address, to_checksum_address
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import Timeout

from chaindeck.deploy.clients.base import BaseChainClient
from chaindeck.deploy.clients.encoding import (
    decode_revert_reason,
    encode_call,
    encode_constructor,
)
from chaindeck.lib.errors import (
    ChainClientError,
    ChainConnectionError,
    ConfirmationTimeoutError,
    TransactionFailedError,
)
from chaindeck.models.artifact import Artifact
from chaindeck.models.plan import RpcConfig

logger = logging.getLogger(__name__)

EMPTY_CODE = ("", "0x", "0x0")


class JsonRpcChainClient(BaseChainClient):
    """Chain client speaking Ethereum JSON-RPC over HTTP.

    Example:
        >>> client = JsonRpcChainClient(RpcConfig(url="http://localhost:8545"))
        >>> client.current_identity()
        '0xf39F...'
    """

    def __init__(self, config: RpcConfig) -> None:
        """Initialize the client.

        Args:
            config: RPC endpoint, sender and timeout settings
        """
        self.config = config
        self.url = config.url
        self._session = requests.Session()
        self._ids = itertools.count(1)
        self._identity: str | None = None

    def has_code(self, address: str) -> bool:
        code = self._rpc("getCode", "eth_getCode", [address, "latest"])
        if not isinstance(code, str):
            raise ChainClientError("getCode", f"eth_getCode returned {code!r}")
        return code not in EMPTY_CODE

    def current_identity(self) -> str:
        if self._identity is None:
            if self.config.sender:
                self._identity = to_checksum_address(self.config.sender)
            else:
                accounts = self._rpc("identity", "eth_accounts", [])
                if not accounts:
                    raise ChainClientError(
                        "identity",
                        "The node exposes no accounts; set rpc.sender in the plan",
                    )
                self._identity = to_checksum_address(accounts[0])
        return self._identity

    def deploy(self, artifact: Artifact, constructor_args: Sequence[Any]) -> str:
        data = artifact.bytecode + encode_constructor(
            artifact.constructor_inputs(), list(constructor_args)
        )
        tx = {"from": self.current_identity(), "data": data}
        tx_hash = self._rpc("deploy", "eth_sendTransaction", [tx])
        logger.info(f"Submitted {artifact.name} deployment in {tx_hash}")

        receipt = self._wait_for_receipt("deploy", tx_hash)
        address = receipt.get("contractAddress")
        if not address or not is_address(address):
            raise TransactionFailedError(
                "deploy", "Receipt carries no contract address", tx_hash=tx_hash
            )
        return to_checksum_address(address)

    def invoke(self, target: str, action: str, args: Sequence[Any]) -> None:
        tx = {
            "from": self.current_identity(),
            "to": target,
            "data": encode_call(action, args),
        }
        # Dry run first: reverts surface with their reason text here, which a
        # mined failed receipt would not carry.
        self._rpc("invoke", "eth_call", [tx, "latest"])
        tx_hash = self._rpc("invoke", "eth_sendTransaction", [tx])
        logger.info(f"Submitted {action} on {target} in {tx_hash}")
        self._wait_for_receipt("invoke", tx_hash)

    def _wait_for_receipt(self, operation: str, tx_hash: str) -> dict[str, Any]:
        deadline = time.monotonic() + self.config.confirmation_timeout
        while True:
            receipt = self._rpc(operation, "eth_getTransactionReceipt", [tx_hash])
            if receipt:
                break
            if time.monotonic() >= deadline:
                raise ConfirmationTimeoutError(
                    operation, tx_hash, self.config.confirmation_timeout
                )
            time.sleep(self.config.poll_interval)

        status = receipt.get("status")
        if status is not None and int(status, 16) != 1:
            raise TransactionFailedError(
                operation, f"Transaction {tx_hash} reverted", tx_hash=tx_hash
            )
        logger.debug(f"Transaction {tx_hash} confirmed in block {receipt.get('blockNumber')}")
        return receipt

    def _rpc(self, operation: str, method: str, params: list[Any]) -> Any:
        """Execute a JSON-RPC request with error handling.

        Raises:
            ChainConnectionError: Connection/timeout issues
            ChainClientError: HTTP or JSON-RPC level errors
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug(f"RPC {method} {params!r}")
        try:
            response = self._session.post(
                self.url, json=payload, timeout=self.config.timeout
            )
        except (Timeout, RequestsConnectionError) as e:
            raise ChainConnectionError(self.url, operation, original_error=e) from e
        except requests.RequestException as e:
            raise ChainClientError(operation, f"{method} request failed: {e}") from e

        if not response.ok:
            raise ChainClientError(
                operation, f"{method} returned HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ChainClientError(operation, f"{method} returned invalid JSON") from e

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            raise ChainClientError(operation, self._error_message(method, error))
        if not isinstance(body, dict) or "result" not in body:
            raise ChainClientError(operation, f"{method} returned no result")
        return body["result"]

    @staticmethod
    def _error_message(method: str, error: Any) -> str:
        if not isinstance(error, dict):
            return f"{method}: {error}"
        message = str(error.get("message", "unknown error"))
        reason = decode_revert_reason(error.get("data"))
        if reason and reason not in message:
            message = f"{message}: {reason}"
        with contextlib.suppress(AttributeError):
            nested = error.get("data", {}).get("message")
            if nested and nested not in message:
                message = f"{message} ({nested})"
        return message
