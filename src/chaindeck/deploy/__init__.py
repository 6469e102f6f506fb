"""ChainDeck deployment engine.

This package provides the resumable deployment orchestrator together with
its ledger storage, artifact resolution and chain client adapters.
"""

from chaindeck.deploy.ledger import LedgerSession, LedgerStore, get_ledger_dir
from chaindeck.deploy.orchestrator import (
    Orchestrator,
    RunResult,
    RunState,
    StepAction,
    StepOutcome,
)
from chaindeck.deploy.resolver import BaseArtifactResolver, HardhatArtifactResolver

__all__ = [
    "BaseArtifactResolver",
    "HardhatArtifactResolver",
    "LedgerSession",
    "LedgerStore",
    "Orchestrator",
    "RunResult",
    "RunState",
    "StepAction",
    "StepOutcome",
    "get_ledger_dir",
]
