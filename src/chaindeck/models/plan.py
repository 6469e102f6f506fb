"""Pydantic models for deployment plans.

A plan is an ordered list of steps. Declaration order is dependency order:
a step may only reference units produced by ``deploy`` steps declared before
it. The ordering is checked when the plan is constructed, so misordered plans
are rejected before any transaction is sent.

Argument values are literals or references, resolved recursively:

- ``{"$unit": "Name"}``: address of a previously deployed unit
- ``{"$deployer": true}``: the ledger's deployer identity
- ``{"$zero_address": true}``: the zero address
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from chaindeck.lib.errors import PlanError

UNIT_REF = "$unit"
DEPLOYER_REF = "$deployer"
ZERO_ADDRESS_REF = "$zero_address"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

ACTION_SIGNATURE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\(.*\)$")
NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


def _is_reference(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and len(value) == 1
        and next(iter(value)) in (UNIT_REF, DEPLOYER_REF, ZERO_ADDRESS_REF)
    )


def iter_unit_refs(value: Any) -> Iterator[str]:
    """Yield every unit name referenced by an argument value."""
    if _is_reference(value):
        if UNIT_REF in value:
            yield str(value[UNIT_REF])
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_unit_refs(item)
    elif isinstance(value, list | tuple):
        for item in value:
            yield from iter_unit_refs(item)


def resolve_args(
    value: Any,
    units: Mapping[str, str],
    deployer: str | None,
    step_id: str | None = None,
) -> Any:
    """Replace references in an argument value with concrete values.

    Raises:
        PlanError: If a referenced unit has no address in ``units``
    """
    if _is_reference(value):
        if UNIT_REF in value:
            name = str(value[UNIT_REF])
            if name not in units:
                raise PlanError(
                    f"Unit '{name}' has no deployed address; "
                    "its producing step must run first",
                    step_id=step_id,
                )
            return units[name]
        if DEPLOYER_REF in value:
            if not deployer:
                raise PlanError("Deployer identity is not known", step_id=step_id)
            return deployer
        return ZERO_ADDRESS
    if isinstance(value, Mapping):
        return {
            key: resolve_args(item, units, deployer, step_id)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [resolve_args(item, units, deployer, step_id) for item in value]
    return value


class PlanStep(BaseModel):
    """Common fields for every plan step."""

    model_config = ConfigDict(extra="forbid")

    id: Decimal = Field(..., description="Step number, increasing in plan order")
    description: str = Field(..., description="Human-readable step description")

    @field_validator("id", mode="before")
    @classmethod
    def parse_step_id(cls, v: Any) -> Decimal:
        """Parse step ids through their string form so 1.1 stays 1.1."""
        if isinstance(v, bool):
            raise ValueError("Step id must be a number")
        try:
            parsed = Decimal(str(v))
        except InvalidOperation as exc:
            raise ValueError(f"Invalid step id: {v!r}") from exc
        if not parsed.is_finite() or parsed < 0:
            raise ValueError(f"Step id must be a non-negative number: {v!r}")
        return parsed

    def unit_refs(self) -> set[str]:
        """Return the unit names this step depends on."""
        return set()


class CheckpointStep(PlanStep):
    """Progress marker without side effects."""

    kind: Literal["checkpoint"] = "checkpoint"


class DeployStep(PlanStep):
    """Deploy a unit if it is not already live."""

    kind: Literal["deploy"] = "deploy"
    unit: str = Field(..., description="Ledger name of the deployed unit")
    artifact: str | None = Field(
        default=None, description="Artifact name (defaults to the unit name)"
    )
    args: list[Any] = Field(default_factory=list, description="Constructor arguments")

    @field_validator("unit")
    @classmethod
    def validate_unit(cls, v: str) -> str:
        """Validate unit name pattern."""
        if not NAME_PATTERN.match(v):
            raise ValueError(f"Invalid unit name: {v}")
        return v

    @property
    def artifact_name(self) -> str:
        return self.artifact or self.unit

    def unit_refs(self) -> set[str]:
        return set(iter_unit_refs(self.args))


class ConfigureStep(PlanStep):
    """One-time configuration call guarded by a ledger flag.

    ``already_done`` lists case-sensitive substrings of error messages that
    mean the target already reflects this configuration.
    """

    kind: Literal["configure"] = "configure"
    flag: str = Field(..., description="Ledger flag marking the action as done")
    target: str = Field(..., description="Unit whose address receives the call")
    action: str = Field(..., description="Function signature, e.g. setOwner(address)")
    args: list[Any] = Field(default_factory=list, description="Call arguments")
    already_done: list[str] = Field(
        default_factory=list,
        description="Error substrings meaning the action was already performed",
    )

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: str) -> str:
        """Validate that the action is a full function signature."""
        compact = v.replace(" ", "")
        if not ACTION_SIGNATURE_PATTERN.match(compact):
            raise ValueError(
                f"Invalid action signature: {v}. Expected e.g. 'setOwner(address)'"
            )
        return compact

    @field_validator("already_done")
    @classmethod
    def validate_already_done(cls, v: list[str]) -> list[str]:
        """Reject empty signatures, which would match every error."""
        if any(not item for item in v):
            raise ValueError("already_done entries must be non-empty strings")
        return v

    def unit_refs(self) -> set[str]:
        return {self.target} | set(iter_unit_refs(self.args))


Step = Annotated[
    DeployStep | ConfigureStep | CheckpointStep, Field(discriminator="kind")
]


class RpcConfig(BaseModel):
    """JSON-RPC connection settings."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., description="JSON-RPC endpoint URL")
    sender: str | None = Field(
        default=None, description="Sending account (defaults to first node account)"
    )
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout")
    confirmation_timeout: float = Field(
        default=300.0, gt=0, description="Seconds to wait for a receipt"
    )
    poll_interval: float = Field(
        default=2.0, gt=0, description="Seconds between receipt polls"
    )


class ArtifactsConfig(BaseModel):
    """Where compiled artifacts are looked up."""

    model_config = ConfigDict(extra="forbid")

    roots: list[str] = Field(
        default_factory=lambda: ["artifacts/contracts"],
        description="Directories searched for <Name>.json artifacts",
    )
    paths: dict[str, str] = Field(
        default_factory=dict, description="Explicit artifact name -> file mappings"
    )


class DeploymentPlan(BaseModel):
    """A complete, validated deployment plan."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Plan name")
    network: str = Field(..., description="Target network identifier")
    rpc: RpcConfig | None = Field(default=None, description="RPC settings")
    state_dir: str = Field(
        default="deployments", description="Directory holding ledgers"
    )
    artifacts: ArtifactsConfig = Field(default_factory=ArtifactsConfig)
    steps: list[Step] = Field(..., min_length=1, description="Ordered plan steps")

    @field_validator("network")
    @classmethod
    def validate_network(cls, v: str) -> str:
        """Validate network identifier (used as a directory name)."""
        if not NAME_PATTERN.match(v):
            raise ValueError(f"Invalid network identifier: {v}")
        return v

    @model_validator(mode="after")
    def validate_ordering(self) -> DeploymentPlan:
        """Check ids, uniqueness and that references point to earlier steps."""
        check_plan_order(self.steps)
        return self

    @property
    def deploy_steps(self) -> list[DeployStep]:
        return [step for step in self.steps if isinstance(step, DeployStep)]

    @property
    def configure_steps(self) -> list[ConfigureStep]:
        return [step for step in self.steps if isinstance(step, ConfigureStep)]

    def dependents_of(self, units: set[str]) -> tuple[set[str], set[str]]:
        """Return units and flags that transitively depend on ``units``.

        The returned unit set includes ``units`` themselves.
        """
        affected = set(units)
        # Steps are in dependency order, so one forward pass is transitive
        for step in self.deploy_steps:
            if step.unit_refs() & affected:
                affected.add(step.unit)
        flags = {
            step.flag
            for step in self.configure_steps
            if step.unit_refs() & affected
        }
        return affected, flags


def check_plan_order(steps: list[Any]) -> None:
    """Validate a step sequence.

    Raises:
        PlanError: On non-increasing ids, duplicate unit or flag names, or a
            reference to a unit not produced by an earlier deploy step
    """
    produced: set[str] = set()
    flags: set[str] = set()
    previous: Decimal | None = None

    for step in steps:
        step_id = str(step.id)
        if previous is not None and step.id <= previous:
            raise PlanError(
                f"Step id {step_id} must be greater than the previous id {previous}",
                step_id=step_id,
            )
        previous = step.id

        missing = sorted(step.unit_refs() - produced)
        if missing:
            raise PlanError(
                f"References unit(s) {', '.join(missing)} before they are deployed",
                step_id=step_id,
            )

        if isinstance(step, DeployStep):
            if step.unit in produced:
                raise PlanError(f"Unit '{step.unit}' is deployed twice", step_id)
            produced.add(step.unit)
        elif isinstance(step, ConfigureStep):
            if step.flag in flags:
                raise PlanError(f"Flag '{step.flag}' is used twice", step_id)
            flags.add(step.flag)
