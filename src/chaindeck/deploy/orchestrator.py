"""Resumable, idempotent deployment orchestrator.

The orchestrator walks a plan's steps in declared order. Before each step it
moves the ledger's progress marker (flushed); deploy steps reuse cached units
that are still live, configure steps are skipped once their flag is set, and
every result is flushed before the next step starts. A run interrupted at any
point resumes from the ledger on the next invocation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from chaindeck.deploy.classify import matching_signature
from chaindeck.deploy.clients.base import BaseChainClient
from chaindeck.deploy.ledger import LedgerSession, LedgerStore, new_ledger
from chaindeck.deploy.reconcile import Liveness, check_liveness
from chaindeck.deploy.resolver import BaseArtifactResolver
from chaindeck.lib.errors import (
    ChainClientError,
    ChainDeckError,
    DeploymentAborted,
    LedgerError,
    PlanError,
)
from chaindeck.lib.logging_config import get_logger
from chaindeck.models.plan import (
    CheckpointStep,
    ConfigureStep,
    DeploymentPlan,
    DeployStep,
    PlanStep,
    resolve_args,
)

logger = get_logger(__name__)


class RunState(str, Enum):
    """Orchestrator states."""

    FRESH = "fresh"
    RESUMING = "resuming"
    COMPLETED = "completed"
    FORCE_RESET = "force_reset"
    ABORTED = "aborted"


class StepAction(str, Enum):
    """What a step did during a run."""

    DEPLOYED = "deployed"
    REUSED = "reused"
    CONFIGURED = "configured"
    ALREADY_DONE = "already_done"
    SKIPPED = "skipped"
    CHECKPOINT = "checkpoint"


@dataclass
class StepOutcome:
    """Result of executing one plan step."""

    step_id: str
    description: str
    action: StepAction
    unit: str | None = None
    address: str | None = None
    flag: str | None = None


@dataclass
class RunResult:
    """Summary of an orchestrator run."""

    entry_state: RunState
    state: RunState
    units: dict[str, str] = field(default_factory=dict)
    flags: dict[str, bool] = field(default_factory=dict)
    outcomes: list[StepOutcome] = field(default_factory=list)
    purged: list[str] = field(default_factory=list)
    archive_path: Path | None = None

    @property
    def deployed(self) -> list[str]:
        return [
            o.unit
            for o in self.outcomes
            if o.action == StepAction.DEPLOYED and o.unit
        ]


class Orchestrator:
    """Drive a deployment plan to completion against a ledger."""

    def __init__(
        self,
        plan: DeploymentPlan,
        client: BaseChainClient,
        resolver: BaseArtifactResolver,
        store: LedgerStore,
        force: bool = False,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            plan: Validated deployment plan
            client: Chain client used for lookups and transactions
            resolver: Artifact resolver for deploy steps
            store: Ledger storage for the plan's network
            force: Discard any existing ledger and redeploy everything
        """
        self.plan = plan
        self.client = client
        self.resolver = resolver
        self.store = store
        self.force = force
        self.state: RunState | None = None

    def run(self) -> RunResult:
        """Execute the plan.

        Returns:
            RunResult describing what happened.

        Raises:
            DeploymentAborted: If a step fails; the ledger keeps its last
                flushed checkpoint.
            ChainDeckError: If the run cannot start (ledger or identity
                problems).
        """
        try:
            return self._run()
        except BaseException:
            self.state = RunState.ABORTED
            raise

    def _run(self) -> RunResult:
        entry_state, session = self._open()
        self.state = entry_state

        if entry_state == RunState.COMPLETED:
            ledger = session.ledger
            logger.info(
                f"Deployment already completed at {ledger.completed_at}; "
                "use force mode to redeploy everything"
            )
            return RunResult(
                entry_state=entry_state,
                state=RunState.COMPLETED,
                units=dict(ledger.units),
                flags=dict(ledger.flags),
            )

        purged: list[str] = []
        if entry_state == RunState.RESUMING:
            purged = self._reconcile_all(session)
            progress = session.ledger.progress
            logger.info(f"Resuming from step {progress.step_id}: {progress.description}")

        outcomes = [self._run_step(session, step) for step in self.plan.steps]

        session.mark_completed()
        archive_path = session.archive()
        self.state = RunState.COMPLETED

        ledger = session.ledger
        logger.info(f"Deployment completed with {len(ledger.units)} units")
        return RunResult(
            entry_state=entry_state,
            state=RunState.COMPLETED,
            units=dict(ledger.units),
            flags=dict(ledger.flags),
            outcomes=outcomes,
            purged=purged,
            archive_path=archive_path,
        )

    def _open(self) -> tuple[RunState, LedgerSession]:
        """Load or create the ledger and pick the entry state."""
        network = self.plan.network

        if self.force:
            logger.info("Force mode: discarding existing ledger state")
            identity = self.client.current_identity()
            session = LedgerSession(self.store, new_ledger(network, identity))
            session.flush()
            return RunState.FORCE_RESET, session

        existing = self.store.load()
        if existing is None:
            identity = self.client.current_identity()
            session = LedgerSession(self.store, new_ledger(network, identity))
            session.flush()
            logger.info(f"Starting fresh deployment on {network} as {identity}")
            return RunState.FRESH, session

        if existing.network != network:
            raise LedgerError(
                str(self.store.path),
                f"Ledger belongs to network '{existing.network}', "
                f"but the plan targets '{network}'",
            )

        session = LedgerSession(self.store, existing)
        logger.info(
            f"Found existing ledger from {existing.created_at.isoformat()} "
            f"(step {existing.progress.step_id}: {existing.progress.description})"
        )
        if existing.completed:
            return RunState.COMPLETED, session

        identity = self.client.current_identity()
        if session.deployer is None:
            session.set_deployer(identity)
        elif session.deployer.lower() != identity.lower():
            logger.warning(
                f"Current identity {identity} differs from recorded deployer "
                f"{session.deployer}; keeping the recorded deployer"
            )
        return RunState.RESUMING, session

    def _reconcile_all(self, session: LedgerSession) -> list[str]:
        """Verify every cached unit and purge the dead ones with dependents."""
        dead: list[str] = []
        for name, address in session.units.items():
            if check_liveness(self.client, address) == Liveness.LIVE:
                logger.info(f"{name} verified at {address}")
            else:
                logger.warning(f"{name} not found at {address}, will redeploy")
                dead.append(name)
        if not dead:
            return []
        return self._invalidate(session, dead)

    def _invalidate(self, session: LedgerSession, units: Iterable[str]) -> list[str]:
        """Purge units, the units built on them, and flags that reference them."""
        affected, flags = self.plan.dependents_of(set(units))
        removed = session.forget_units(sorted(affected))
        cleared = session.clear_flags(sorted(flags))
        dependents = sorted(set(removed) - set(units))
        if dependents:
            logger.warning(f"Also redeploying dependent units: {', '.join(dependents)}")
        if cleared:
            logger.warning(f"Configuration will be repeated for: {', '.join(cleared)}")
        return removed

    def _run_step(self, session: LedgerSession, step: PlanStep) -> StepOutcome:
        step_id = str(step.id)
        session.advance(step.id, step.description)
        logger.info(f"Step {step_id}: {step.description}")
        try:
            if isinstance(step, DeployStep):
                return self._deploy(session, step)
            if isinstance(step, ConfigureStep):
                return self._configure(session, step)
        except ChainDeckError as exc:
            logger.error(f"Step {step_id} failed: {exc}")
            raise DeploymentAborted(step_id, step.description, exc) from exc

        if not isinstance(step, CheckpointStep):
            raise DeploymentAborted(
                step_id,
                step.description,
                PlanError(f"Unsupported step type {type(step).__name__}", step_id),
            )
        return StepOutcome(step_id, step.description, StepAction.CHECKPOINT)

    def _deploy(self, session: LedgerSession, step: DeployStep) -> StepOutcome:
        step_id = str(step.id)
        cached = session.address_of(step.unit)

        if cached and not self.force:
            if check_liveness(self.client, cached) == Liveness.LIVE:
                logger.info(f"Skipping {step.unit} - already deployed at {cached}")
                return StepOutcome(
                    step_id,
                    step.description,
                    StepAction.REUSED,
                    unit=step.unit,
                    address=cached,
                )
            logger.warning(f"{step.unit} recorded at {cached} but not live, redeploying")
            self._invalidate(session, [step.unit])

        artifact = self.resolver.resolve(step.artifact_name)
        args = resolve_args(step.args, session.units, session.deployer, step_id)

        logger.info(f"Deploying {step.unit} ({artifact.name})...")
        address = self.client.deploy(artifact, args)
        session.record_unit(step.unit, address)
        logger.info(f"{step.unit} deployed at {address}")
        return StepOutcome(
            step_id, step.description, StepAction.DEPLOYED, unit=step.unit, address=address
        )

    def _configure(self, session: LedgerSession, step: ConfigureStep) -> StepOutcome:
        step_id = str(step.id)
        if session.flag(step.flag) and not self.force:
            logger.info(f"Skipping {step.flag} - already configured")
            return StepOutcome(
                step_id, step.description, StepAction.SKIPPED, flag=step.flag
            )

        target = session.address_of(step.target)
        if target is None:
            raise PlanError(
                f"Target unit '{step.target}' has no deployed address", step_id
            )
        args = resolve_args(step.args, session.units, session.deployer, step_id)

        try:
            self.client.invoke(target, step.action, args)
        except ChainClientError as exc:
            signature = matching_signature(exc, step.already_done)
            if signature is None:
                raise
            logger.info(f"{step.flag} already in place on chain ('{signature}')")
            session.set_flag(step.flag)
            return StepOutcome(
                step_id, step.description, StepAction.ALREADY_DONE, flag=step.flag
            )

        session.set_flag(step.flag)
        logger.info(f"{step.action} applied to {step.target}")
        return StepOutcome(
            step_id, step.description, StepAction.CONFIGURED, flag=step.flag
        )
