"""Plan loader for ChainDeck.

Reads a YAML plan file, substitutes environment variables, applies
environment overrides and validates the result as a ``DeploymentPlan``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from chaindeck.config.defaults import ENV_FILE_NAME, RPC_URL_ENV_VAR
from chaindeck.config.env_loader import get_env_var, load_env_file, substitute_env_vars
from chaindeck.config.validator import flatten_pydantic_errors
from chaindeck.lib.errors import ConfigError, FileNotFoundError
from chaindeck.models.plan import DeploymentPlan

logger = logging.getLogger(__name__)


def _read_yaml_with_env_substitution(path: Path) -> dict[str, Any] | None:
    """Read a YAML file with environment variable substitution.

    Raises:
        OSError: If file cannot be read
        yaml.YAMLError: If YAML parsing fails
        ConfigError: If env var substitution fails
    """
    raw_text = path.read_text(encoding="utf-8")
    substituted = substitute_env_vars(raw_text)
    content = yaml.safe_load(substituted)
    return content if content else None


class PlanLoader:
    """Loads and validates deployment plans from YAML files."""

    def __init__(self, load_dotenv: bool = True) -> None:
        self.load_dotenv = load_dotenv

    def load(self, file_path: str | Path) -> DeploymentPlan:
        """Load and validate a deployment plan.

        Relative ``state_dir`` and artifact paths are resolved against the
        plan file's directory.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigError: If YAML parsing or validation fails
            PlanError: If step ordering or references are invalid
        """
        path = Path(file_path)
        if self.load_dotenv and load_env_file(path.parent, ENV_FILE_NAME):
            logger.debug(f"Loaded environment from {path.parent / ENV_FILE_NAME}")

        try:
            data = _read_yaml_with_env_substitution(path)
        except OSError as e:
            raise FileNotFoundError(
                str(file_path),
                f"Plan file not found at {file_path}. "
                f"Please ensure the file exists at this path.",
            ) from e
        except yaml.YAMLError as e:
            raise ConfigError(
                "yaml_parse",
                f"Failed to parse YAML file {file_path}: {str(e)}",
            ) from e

        if not isinstance(data, dict):
            raise ConfigError("plan", f"Plan file {file_path} must contain a mapping")

        self._apply_env_overrides(data)
        self._resolve_paths(data, path.parent.resolve())

        try:
            plan = DeploymentPlan(**data)
        except PydanticValidationError as e:
            error_text = "\n".join(flatten_pydantic_errors(e))
            raise ConfigError(
                "plan_validation",
                f"Invalid plan in {file_path}:\n{error_text}",
            ) from e

        logger.debug(
            f"Loaded plan '{plan.name}' for network {plan.network} "
            f"with {len(plan.steps)} steps"
        )
        return plan

    @staticmethod
    def _apply_env_overrides(data: dict[str, Any]) -> None:
        rpc_url = get_env_var(RPC_URL_ENV_VAR)
        if not rpc_url:
            return
        rpc = data.get("rpc")
        if rpc is None:
            data["rpc"] = {"url": rpc_url}
        elif isinstance(rpc, dict):
            rpc["url"] = rpc_url

    @staticmethod
    def _resolve_paths(data: dict[str, Any], base_dir: Path) -> None:
        def _absolute(value: str) -> str:
            candidate = Path(value).expanduser()
            return str(candidate if candidate.is_absolute() else base_dir / candidate)

        if isinstance(data.get("state_dir"), str):
            data["state_dir"] = _absolute(data["state_dir"])
        else:
            data.setdefault("state_dir", str(base_dir / "deployments"))

        artifacts = data.setdefault("artifacts", {})
        if not isinstance(artifacts, dict):
            return
        roots = artifacts.setdefault("roots", ["artifacts/contracts"])
        if isinstance(roots, list):
            artifacts["roots"] = [
                _absolute(r) if isinstance(r, str) else r for r in roots
            ]
        paths = artifacts.get("paths")
        if isinstance(paths, dict):
            artifacts["paths"] = {
                k: _absolute(v) if isinstance(v, str) else v for k, v in paths.items()
            }


def load_plan(file_path: str | Path) -> DeploymentPlan:
    """Load a plan with default loader settings."""
    return PlanLoader().load(file_path)
