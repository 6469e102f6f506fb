"""Pytest configuration and shared fixtures for ChainDeck tests."""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator, Sequence
from pathlib import Path
from typing import Any

import pytest

from chaindeck.deploy.clients.base import BaseChainClient
from chaindeck.deploy.ledger import LedgerStore
from chaindeck.deploy.resolver import BaseArtifactResolver
from chaindeck.lib.errors import ArtifactNotFoundError, ChainClientError
from chaindeck.models.artifact import Artifact
from chaindeck.models.plan import DeploymentPlan

DEPLOYER = "0x" + "ab" * 20


class FakeChainClient(BaseChainClient):
    """In-memory chain: deployments create sequential addresses."""

    def __init__(self, identity: str = DEPLOYER) -> None:
        self.identity = identity
        self.live: set[str] = set()
        self.deploy_calls: list[tuple[str, list[Any]]] = []
        self.invoke_calls: list[tuple[str, str, list[Any]]] = []
        self.deploy_errors: dict[str, Exception] = {}
        self.invoke_errors: dict[str, Exception] = {}
        self.code_errors: set[str] = set()
        self._counter = itertools.count(1)

    def has_code(self, address: str) -> bool:
        if address.lower() in self.code_errors:
            raise ChainClientError("getCode", "upstream timeout")
        return address.lower() in self.live

    def deploy(self, artifact: Artifact, constructor_args: Sequence[Any]) -> str:
        self.deploy_calls.append((artifact.name, list(constructor_args)))
        if artifact.name in self.deploy_errors:
            raise self.deploy_errors[artifact.name]
        address = f"0x{next(self._counter):040x}"
        self.live.add(address)
        return address

    def invoke(self, target: str, action: str, args: Sequence[Any]) -> None:
        self.invoke_calls.append((target, action, list(args)))
        if action in self.invoke_errors:
            raise self.invoke_errors[action]

    def current_identity(self) -> str:
        return self.identity

    def kill(self, address: str) -> None:
        """Make a previously deployed address report no code."""
        self.live.discard(address.lower())

    @property
    def deployed_names(self) -> list[str]:
        return [name for name, _ in self.deploy_calls]


class FakeResolver(BaseArtifactResolver):
    """Resolver returning a trivial artifact for every known name."""

    def __init__(self, missing: Sequence[str] = ()) -> None:
        self.missing = set(missing)
        self.calls: list[str] = []

    def resolve(self, name: str) -> Artifact:
        self.calls.append(name)
        if name in self.missing:
            raise ArtifactNotFoundError(name, "Unknown artifact")
        return Artifact(name=name, abi=[], bytecode="0x6001600155")


def plan_data(**overrides: Any) -> dict[str, Any]:
    """Return raw data for a small four-step plan.

    A <- B <- C, with a configuration action linking B to A.
    """
    data: dict[str, Any] = {
        "name": "test-plan",
        "network": "testnet",
        "steps": [
            {"id": 1, "kind": "deploy", "description": "Deploy A", "unit": "A"},
            {
                "id": 2,
                "kind": "deploy",
                "description": "Deploy B",
                "unit": "B",
                "args": [{"$unit": "A"}],
            },
            {
                "id": 2.1,
                "kind": "configure",
                "description": "Link B to A",
                "flag": "linked",
                "target": "B",
                "action": "setA(address)",
                "args": [{"$unit": "A"}],
                "already_done": ["already linked"],
            },
            {
                "id": 3,
                "kind": "deploy",
                "description": "Deploy C",
                "unit": "C",
                "args": [{"$unit": "B"}, {"$deployer": True}],
            },
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Temporary directory for test file operations."""
    return tmp_path


@pytest.fixture
def isolated_env() -> Generator[dict[str, str]]:
    """Save and restore environment variables around a test."""
    original_env = os.environ.copy()
    yield original_env
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def plan_dict() -> dict[str, Any]:
    """Raw data of the small test plan."""
    return plan_data()


@pytest.fixture
def plan() -> DeploymentPlan:
    """Small validated plan."""
    return DeploymentPlan.model_validate(plan_data())


@pytest.fixture
def chain() -> FakeChainClient:
    """Fresh in-memory chain client."""
    return FakeChainClient()


@pytest.fixture
def resolver() -> FakeResolver:
    """Resolver that knows every artifact."""
    return FakeResolver()


@pytest.fixture
def store(tmp_path: Path) -> LedgerStore:
    """Ledger store in a temporary directory."""
    return LedgerStore(tmp_path / "deployments" / "testnet")


@pytest.fixture
def chain_factory() -> type[FakeChainClient]:
    """Factory for additional chain clients (e.g. another identity)."""
    return FakeChainClient


@pytest.fixture
def resolver_factory() -> type[FakeResolver]:
    """Factory for resolvers with missing artifacts."""
    return FakeResolver
