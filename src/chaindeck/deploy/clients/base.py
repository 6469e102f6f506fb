"""Base interface for chain clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from chaindeck.models.artifact import Artifact


class BaseChainClient(ABC):
    """Abstract base class for chain clients.

    A chain client reports code presence, deploys artifacts and invokes
    configuration actions. Every submitting call blocks until the transaction
    is confirmed.
    """

    @abstractmethod
    def has_code(self, address: str) -> bool:
        """Report whether non-empty code exists at an address.

        Args:
            address: Hex address to query.

        Returns:
            True if a live instance exists at the address.

        Raises:
            ChainClientError: If the query itself fails.
        """

    @abstractmethod
    def deploy(self, artifact: Artifact, constructor_args: Sequence[Any]) -> str:
        """Deploy an artifact and wait for confirmation.

        Args:
            artifact: Resolved artifact with ABI and creation bytecode.
            constructor_args: Concrete constructor argument values.

        Returns:
            Address of the new instance.

        Raises:
            ChainClientError: If submission or confirmation fails.
        """

    @abstractmethod
    def invoke(self, target: str, action: str, args: Sequence[Any]) -> None:
        """Invoke a state-changing action and wait for confirmation.

        Args:
            target: Address of the instance receiving the call.
            action: Function signature, e.g. ``setOwner(address)``.
            args: Concrete call argument values.

        Raises:
            ChainClientError: If the call is rejected, reverts or times out.
                The message carries the node's error text verbatim.
        """

    @abstractmethod
    def current_identity(self) -> str:
        """Return the identity (account address) transactions are sent from.

        Raises:
            ChainClientError: If no identity is available.
        """
