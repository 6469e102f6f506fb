"""Unit tests for the YAML plan loader."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
import yaml

from chaindeck.config.loader import PlanLoader, load_plan
from chaindeck.lib.errors import ConfigError, FileNotFoundError, PlanError


def _write_plan(directory: Path, data: dict[str, Any], name: str = "plan.yaml") -> Path:
    path = directory / name
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


@pytest.fixture
def clean_rpc_env(
    isolated_env: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    """Make sure no RPC override leaks in from the environment."""
    monkeypatch.delenv("CHAINDECK_RPC_URL", raising=False)


@pytest.mark.usefixtures("clean_rpc_env")
class TestPlanLoader:
    """Tests for PlanLoader.load."""

    def test_loads_valid_plan(self, tmp_path: Path, plan_dict: dict[str, Any]) -> None:
        """A well-formed plan file yields a DeploymentPlan."""
        path = _write_plan(tmp_path, plan_dict)

        plan = PlanLoader().load(path)

        assert plan.name == "test-plan"
        assert plan.network == "testnet"
        assert len(plan.steps) == 4

    def test_relative_paths_resolve_against_plan_dir(
        self, tmp_path: Path, plan_dict: dict[str, Any]
    ) -> None:
        """state_dir and artifact locations are relative to the plan file."""
        plan_dict["state_dir"] = "state"
        plan_dict["artifacts"] = {
            "roots": ["build", "/abs/artifacts"],
            "paths": {"A": "vendor/A.json"},
        }
        path = _write_plan(tmp_path, plan_dict)

        plan = PlanLoader().load(path)

        base = tmp_path.resolve()
        assert plan.state_dir == str(base / "state")
        assert plan.artifacts.roots == [str(base / "build"), "/abs/artifacts"]
        assert plan.artifacts.paths == {"A": str(base / "vendor" / "A.json")}

    def test_default_locations(self, tmp_path: Path, plan_dict: dict[str, Any]) -> None:
        """Defaults live next to the plan file."""
        path = _write_plan(tmp_path, plan_dict)

        plan = PlanLoader().load(path)

        base = tmp_path.resolve()
        assert plan.state_dir == str(base / "deployments")
        assert plan.artifacts.roots == [str(base / "artifacts" / "contracts")]

    def test_env_substitution(
        self, tmp_path: Path, plan_dict: dict[str, Any]
    ) -> None:
        """${VAR} references in the file are substituted."""
        os.environ["CHAINDECK_TEST_NETWORK"] = "sepolia"
        plan_dict["network"] = "${CHAINDECK_TEST_NETWORK}"
        plan_dict["rpc"] = {"url": "${CHAINDECK_TEST_RPC:-http://127.0.0.1:8545}"}
        path = _write_plan(tmp_path, plan_dict)

        plan = PlanLoader().load(path)

        assert plan.network == "sepolia"
        assert plan.rpc is not None
        assert plan.rpc.url == "http://127.0.0.1:8545"

    def test_rpc_url_env_override(
        self, tmp_path: Path, plan_dict: dict[str, Any]
    ) -> None:
        """CHAINDECK_RPC_URL replaces the configured endpoint."""
        os.environ["CHAINDECK_RPC_URL"] = "http://override:8545"
        plan_dict["rpc"] = {"url": "http://file:8545", "timeout": 10}
        path = _write_plan(tmp_path, plan_dict)

        plan = PlanLoader().load(path)

        assert plan.rpc is not None
        assert plan.rpc.url == "http://override:8545"
        assert plan.rpc.timeout == 10

    def test_rpc_url_env_creates_section(
        self, tmp_path: Path, plan_dict: dict[str, Any]
    ) -> None:
        """The override works for plans without an rpc section."""
        os.environ["CHAINDECK_RPC_URL"] = "http://override:8545"
        path = _write_plan(tmp_path, plan_dict)

        plan = PlanLoader().load(path)

        assert plan.rpc is not None
        assert plan.rpc.url == "http://override:8545"

    def test_dotenv_next_to_plan(
        self, tmp_path: Path, plan_dict: dict[str, Any]
    ) -> None:
        """A .env file beside the plan feeds substitution."""
        os.environ.pop("CHAINDECK_TEST_PLAN_NAME", None)
        (tmp_path / ".env").write_text(
            "CHAINDECK_TEST_PLAN_NAME=from-dotenv\n", encoding="utf-8"
        )
        plan_dict["name"] = "${CHAINDECK_TEST_PLAN_NAME}"
        path = _write_plan(tmp_path, plan_dict)

        assert PlanLoader().load(path).name == "from-dotenv"

    def test_dotenv_can_be_disabled(
        self, tmp_path: Path, plan_dict: dict[str, Any]
    ) -> None:
        """With load_dotenv=False the .env file is ignored."""
        os.environ.pop("CHAINDECK_TEST_PLAN_NAME", None)
        (tmp_path / ".env").write_text(
            "CHAINDECK_TEST_PLAN_NAME=from-dotenv\n", encoding="utf-8"
        )
        plan_dict["name"] = "${CHAINDECK_TEST_PLAN_NAME}"
        path = _write_plan(tmp_path, plan_dict)

        with pytest.raises(ConfigError, match="CHAINDECK_TEST_PLAN_NAME"):
            PlanLoader(load_dotenv=False).load(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing plan file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Plan file not found"):
            PlanLoader().load(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Unparseable YAML is a configuration error."""
        path = tmp_path / "plan.yaml"
        path.write_text("steps: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            PlanLoader().load(path)

        assert exc_info.value.field == "yaml_parse"

    @pytest.mark.parametrize("content", ["", "- just\n- a list\n"])
    def test_non_mapping(self, tmp_path: Path, content: str) -> None:
        """Empty files and lists are rejected."""
        path = tmp_path / "plan.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            PlanLoader().load(path)

    def test_schema_errors_are_flattened(
        self, tmp_path: Path, plan_dict: dict[str, Any]
    ) -> None:
        """Pydantic errors become a readable ConfigError."""
        del plan_dict["name"]
        plan_dict["steps"][0]["unit"] = "bad unit"
        path = _write_plan(tmp_path, plan_dict)

        with pytest.raises(ConfigError) as exc_info:
            PlanLoader().load(path)

        assert exc_info.value.field == "plan_validation"
        assert "name" in exc_info.value.message

    def test_ordering_errors_stay_plan_errors(
        self, tmp_path: Path, plan_dict: dict[str, Any]
    ) -> None:
        """Misordered plans raise PlanError naming the step."""
        plan_dict["steps"][0]["args"] = [{"$unit": "C"}]
        path = _write_plan(tmp_path, plan_dict)

        with pytest.raises(PlanError) as exc_info:
            PlanLoader().load(path)

        assert exc_info.value.step_id == "1"

    def test_load_plan_helper(self, tmp_path: Path, plan_dict: dict[str, Any]) -> None:
        """load_plan uses the default loader."""
        path = _write_plan(tmp_path, plan_dict)

        assert load_plan(path).network == "testnet"


@pytest.mark.usefixtures("clean_rpc_env")
class TestBundledPlans:
    """Tests for the plans shipped in the repository."""

    def test_trex_factory_plan_is_valid(self) -> None:
        """The bundled T-REX factory plan loads and is correctly ordered."""
        path = Path(__file__).parents[3] / "plans" / "trex-factory.yaml"

        plan = PlanLoader(load_dotenv=False).load(path)

        assert plan.rpc is not None
        assert plan.rpc.url == "http://127.0.0.1:8545"
        units = [step.unit for step in plan.deploy_steps]
        assert units.index("TREXImplementationAuthority") < units.index("TREXFactory")
        flags = {step.flag for step in plan.configure_steps}
        assert {"versionConfigured", "trexFactoryConfigured"} <= flags
