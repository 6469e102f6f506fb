"""CLI commands for running deployment plans.

Implements the 'chaindeck deploy' command group: run a plan, show the ledger
status for a plan, and validate a plan without touching the chain.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import click

from chaindeck.config.loader import PlanLoader
from chaindeck.deploy.clients import create_chain_client
from chaindeck.deploy.ledger import LedgerStore, get_ledger_dir
from chaindeck.deploy.orchestrator import Orchestrator, RunResult, RunState
from chaindeck.deploy.resolver import HardhatArtifactResolver
from chaindeck.lib.errors import ChainDeckError, ConfigError, DeploymentAborted
from chaindeck.lib.logging_config import get_logger, setup_logging
from chaindeck.models.plan import DeploymentPlan

logger = get_logger(__name__)


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in deploy commands.

    Exit codes:
        2: Configuration or plan error
        3: Deployment aborted or other runtime error
    """
    try:
        yield
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentAborted as e:
        logger.error(f"Deployment aborted: {e}")
        click.secho(f"Error: step {e.step_id} failed", fg="red", err=True)
        click.echo(f"  {e.description}", err=True)
        click.echo(f"  {e.cause}", err=True)
        click.echo("  Progress is saved; re-run to resume.", err=True)
        sys.exit(3)
    except ChainDeckError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)


@click.group(name="deploy", invoke_without_command=True)
@click.pass_context
def deploy(ctx: click.Context) -> None:
    """Run deployment plans against a chain.

    Subcommands:

        run       Execute (or resume) a plan
        status    Show the ledger for a plan
        validate  Check a plan without touching the chain

    Example:

        chaindeck deploy run plan.yaml

        chaindeck deploy run plan.yaml --force
    """
    ctx.ensure_object(dict)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@deploy.command()
@click.argument(
    "plan_file",
    type=click.Path(exists=True, dir_okay=False),
    default="plan.yaml",
    required=False,
)
@click.option(
    "--force",
    is_flag=True,
    help="Discard the existing ledger and redeploy everything",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress progress output",
)
def run(plan_file: str, force: bool, verbose: bool, quiet: bool) -> None:
    """Execute a deployment plan, resuming from its ledger.

    PLAN_FILE is the path to the plan YAML file.
    """
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        plan = PlanLoader().load(plan_file)
        store = _ledger_store(plan)

        if not quiet:
            click.echo()
            click.secho("Deployment Plan:", bold=True)
            click.echo(f"  Plan:      {plan.name}")
            click.echo(f"  Network:   {plan.network}")
            click.echo(f"  Steps:     {len(plan.steps)}")
            click.echo(f"  Ledger:    {store.path}")
            if force:
                click.secho("  Mode:      force redeploy", fg="yellow")
            click.echo()

        orchestrator = Orchestrator(
            plan=plan,
            client=create_chain_client(plan),
            resolver=HardhatArtifactResolver(
                roots=plan.artifacts.roots, paths=plan.artifacts.paths
            ),
            store=store,
            force=force,
        )
        result = orchestrator.run()

        if quiet:
            for name, address in result.units.items():
                click.echo(f"{name}={address}")
            sys.exit(0)

        _display_result(plan, result)


@deploy.command()
@click.argument(
    "plan_file",
    type=click.Path(exists=True, dir_okay=False),
    default="plan.yaml",
    required=False,
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
def status(plan_file: str, verbose: bool) -> None:
    """Show the deployment ledger for a plan."""
    setup_logging(verbose=verbose)

    with handle_deployment_errors():
        plan = PlanLoader().load(plan_file)
        store = _ledger_store(plan)
        ledger = store.load()
        if ledger is None:
            raise ConfigError(
                field="ledger",
                message=(
                    f"No deployment ledger found at {store.path}. "
                    "Run `chaindeck deploy run` first."
                ),
            )

        click.echo()
        click.secho("Deployment Status", bold=True)
        click.echo(f"  Network:   {ledger.network}")
        click.echo(f"  Deployer:  {ledger.deployer_identity or '(unknown)'}")
        click.echo(f"  Created:   {ledger.created_at.isoformat()}")
        click.echo(
            f"  Progress:  step {ledger.progress.step_id} - "
            f"{ledger.progress.description}"
        )
        if ledger.completed and ledger.completed_at:
            click.secho(
                f"  Completed: {ledger.completed_at.isoformat()}", fg="green"
            )
        else:
            click.secho("  Completed: no", fg="yellow")

        click.echo()
        click.secho("Units:", bold=True)
        for step in plan.deploy_steps:
            address = ledger.units.get(step.unit)
            click.echo(f"  {step.unit:<40} {address or '-'}")

        if plan.configure_steps:
            click.echo()
            click.secho("Configuration:", bold=True)
            for configure in plan.configure_steps:
                done = ledger.flags.get(configure.flag, False)
                click.echo(f"  {configure.flag:<40} {'done' if done else 'pending'}")

        archives = store.list_archives()
        if archives:
            click.echo()
            click.echo(f"  Archives:  {len(archives)} (latest {archives[-1].name})")
        click.echo()


@deploy.command()
@click.argument(
    "plan_file",
    type=click.Path(exists=True, dir_okay=False),
    default="plan.yaml",
    required=False,
)
def validate(plan_file: str) -> None:
    """Validate a plan's structure and step ordering."""
    with handle_deployment_errors():
        plan = PlanLoader().load(plan_file)
        click.secho(
            f"Plan '{plan.name}' is valid: {len(plan.steps)} steps, "
            f"{len(plan.deploy_steps)} units, {len(plan.configure_steps)} "
            "configuration actions",
            fg="green",
        )


def _ledger_store(plan: DeploymentPlan) -> LedgerStore:
    return LedgerStore(get_ledger_dir(Path(plan.state_dir), plan.network))


def _display_result(plan: DeploymentPlan, result: RunResult) -> None:
    """Print the run summary."""
    click.echo()
    if result.entry_state == RunState.COMPLETED:
        click.secho("Deployment already completed.", fg="green", bold=True)
        click.echo("  Use --force to redeploy everything.")
    else:
        click.secho("=" * 60, fg="green")
        click.secho("  Deployment Successful!", fg="green", bold=True)
        click.secho("=" * 60, fg="green")
        if result.purged:
            click.secho(
                f"  Redeployed stale units: {', '.join(result.purged)}", fg="yellow"
            )
        click.echo(f"  Newly deployed: {len(result.deployed)}")

    click.echo()
    click.secho("  Deployed units:", bold=True)
    ordered = [s.unit for s in plan.deploy_steps if s.unit in result.units]
    extra = [name for name in result.units if name not in ordered]
    for name in ordered + extra:
        click.echo(f"    {name:<40} {result.units[name]}")
    if result.archive_path:
        click.echo()
        click.echo(f"  Archive:  {result.archive_path}")
    click.echo()

