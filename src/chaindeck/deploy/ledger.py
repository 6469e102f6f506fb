"""Durable deployment ledger storage.

``LedgerStore`` owns the on-disk record: atomic saves, tolerant loads and
immutable completion archives. ``LedgerSession`` wraps the in-progress ledger
and flushes every mutation, so no state lives only in memory across a step
boundary.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

from chaindeck.config.defaults import ARCHIVE_PREFIX, LEDGER_FILENAME
from chaindeck.lib.errors import LedgerError
from chaindeck.lib.logging_config import get_logger
from chaindeck.models.ledger import DeploymentLedger, Progress

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_ledger_dir(state_dir: Path, network: str) -> Path:
    """Return the ledger directory for a network."""
    return state_dir / network


def new_ledger(network: str, deployer_identity: str | None = None) -> DeploymentLedger:
    """Create an empty ledger for a first (or force-reset) run."""
    return DeploymentLedger(
        created_at=_now(),
        network=network,
        deployer_identity=deployer_identity,
    )


class LedgerStore:
    """File-backed ledger storage for one network."""

    def __init__(self, directory: Path, filename: str = LEDGER_FILENAME) -> None:
        self.directory = directory
        self.path = directory / filename

    def load(self) -> DeploymentLedger | None:
        """Load the ledger, returning None when it is missing or unusable.

        A corrupt or unreadable ledger is treated exactly like a missing one.
        """
        if not self.path.exists():
            return None

        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning(f"Could not read ledger at {self.path}, starting fresh: {exc}")
            return None
        except UnicodeDecodeError as exc:
            logger.warning(f"Ledger at {self.path} is not valid UTF-8, starting fresh: {exc}")
            return None

        if not content.strip():
            logger.warning(f"Ledger at {self.path} is empty, starting fresh")
            return None

        try:
            return DeploymentLedger.model_validate_json(content)
        except ValidationError as exc:
            logger.warning(
                f"Ledger at {self.path} is corrupt, starting fresh: "
                f"{exc.error_count()} validation error(s)"
            )
            return None

    def save(self, ledger: DeploymentLedger) -> None:
        """Atomically replace the ledger on disk.

        Raises:
            LedgerError: If the ledger cannot be written
        """
        tmp_name: str | None = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(ledger.to_json())
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise LedgerError(str(self.path), f"Failed to write ledger: {exc}") from exc
        logger.debug(f"Ledger saved to {self.path}")

    def archive(self, ledger: DeploymentLedger) -> Path:
        """Write an immutable, timestamped copy of a completed ledger.

        Raises:
            LedgerError: If the archive cannot be created or already exists
        """
        stamp = (ledger.completed_at or _now()).strftime("%Y%m%dT%H%M%S%fZ")
        archive_path = self.directory / f"{ARCHIVE_PREFIX}{stamp}.json"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(archive_path, "x", encoding="utf-8") as handle:
                handle.write(ledger.to_json())
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(archive_path, 0o444)
        except FileExistsError as exc:
            raise LedgerError(
                str(archive_path), "Archive already exists; refusing to overwrite"
            ) from exc
        except OSError as exc:
            raise LedgerError(
                str(archive_path), f"Failed to write archive: {exc}"
            ) from exc
        logger.info(f"Archived completed ledger to {archive_path.name}")
        return archive_path

    def list_archives(self) -> list[Path]:
        """Return archive files, oldest first."""
        if not self.directory.is_dir():
            return []
        return sorted(self.directory.glob(f"{ARCHIVE_PREFIX}*.json"))


class LedgerSession:
    """The in-progress ledger of one orchestrator run.

    Every mutating method persists the ledger before returning.
    """

    def __init__(self, store: LedgerStore, ledger: DeploymentLedger) -> None:
        self.store = store
        self._ledger = ledger

    @property
    def ledger(self) -> DeploymentLedger:
        """Snapshot of the current ledger."""
        return self._ledger.model_copy(deep=True)

    @property
    def units(self) -> dict[str, str]:
        return dict(self._ledger.units)

    @property
    def deployer(self) -> str | None:
        return self._ledger.deployer_identity

    def address_of(self, unit: str) -> str | None:
        return self._ledger.units.get(unit)

    def flag(self, name: str) -> bool:
        return self._ledger.flags.get(name, False)

    def flush(self) -> None:
        self.store.save(self._ledger)

    def record_unit(self, unit: str, address: str) -> None:
        self._ledger.units[unit] = address
        self.flush()

    def forget_units(self, units: Iterable[str]) -> list[str]:
        """Remove units from the ledger; returns the names actually removed."""
        removed: list[str] = []
        for name in units:
            if name in self._ledger.units:
                del self._ledger.units[name]
                removed.append(name)
        if removed:
            self.flush()
        return removed

    def set_flag(self, name: str, value: bool = True) -> None:
        self._ledger.flags[name] = value
        self.flush()

    def clear_flags(self, names: Iterable[str]) -> list[str]:
        """Reset flags to false; returns the names that were set."""
        cleared = [name for name in names if self._ledger.flags.get(name)]
        for name in cleared:
            self._ledger.flags[name] = False
        if cleared:
            self.flush()
        return cleared

    def set_deployer(self, identity: str) -> None:
        """Record the deployer identity once; later calls are ignored."""
        if self._ledger.deployer_identity:
            return
        self._ledger.deployer_identity = identity
        self.flush()

    def advance(self, step_id: Decimal, description: str) -> None:
        """Move the progress marker forward.

        The marker is a high-water mark: revisiting an earlier step during a
        resume leaves it unchanged.
        """
        if step_id < self._ledger.progress.step_id:
            logger.debug(
                f"Step {step_id} is behind progress marker "
                f"{self._ledger.progress.step_id}; marker unchanged"
            )
            return
        self._ledger.progress = Progress(
            step_id=step_id, description=description, last_updated=_now()
        )
        self.flush()

    def mark_completed(self) -> None:
        """Mark the ledger completed; progress keeps the last step reached."""
        now = _now()
        self._ledger.completed = True
        self._ledger.completed_at = now
        self._ledger.progress = self._ledger.progress.model_copy(
            update={"last_updated": now}
        )
        self.flush()

    def archive(self) -> Path:
        return self.store.archive(self._ledger)
