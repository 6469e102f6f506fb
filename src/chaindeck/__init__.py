"""ChainDeck - Resumable, idempotent contract deployments from YAML plans.

ChainDeck deploys a dependency-ordered set of contracts described in a YAML
plan, records progress in a durable ledger after every step, and can be
interrupted and re-run at any point without repeating completed work.

Main features:
- Plans validated up front (step order, unit references, unique flags)
- Crash-safe ledger with atomic writes and completion archives
- Reconciliation of cached addresses against on-chain code
- One-time configuration actions guarded by ledger flags
"""

from chaindeck.config.loader import PlanLoader
from chaindeck.lib.errors import ChainDeckError, ConfigError, PlanError

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "PlanLoader",
    "ChainDeckError",
    "ConfigError",
    "PlanError",
]
