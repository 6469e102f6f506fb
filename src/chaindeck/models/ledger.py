"""Deployment ledger models persisted between orchestrator runs."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

LEDGER_VERSION = "1.0"


class Progress(BaseModel):
    """High-water mark of plan progress."""

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    step_id: Decimal = Field(default=Decimal(0), description="Last step reached")
    description: str = Field(
        default="Starting deployment...", description="Last step description"
    )
    last_updated: datetime | None = Field(
        default=None, description="When the progress marker last changed"
    )


class DeploymentLedger(BaseModel):
    """Durable record of what has been deployed and configured.

    ``units`` entries are claims: an address recorded here must be checked
    against the chain before it is trusted.
    """

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    version: str = Field(default=LEDGER_VERSION, description="Ledger format version")
    created_at: datetime = Field(..., description="First run timestamp")
    network: str = Field(..., description="Target network identifier")
    deployer_identity: str | None = Field(
        default=None, description="Signing identity used for the first run"
    )
    units: dict[str, str] = Field(
        default_factory=dict, description="Deployed addresses keyed by unit name"
    )
    flags: dict[str, bool] = Field(
        default_factory=dict, description="Completed configuration actions"
    )
    progress: Progress = Field(default_factory=Progress)
    completed: bool = Field(default=False, description="All plan steps succeeded")
    completed_at: datetime | None = Field(
        default=None, description="Completion timestamp"
    )

    def to_json(self) -> str:
        """Serialize using the camelCase on-disk layout."""
        return self.model_dump_json(by_alias=True, indent=2)
