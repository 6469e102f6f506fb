"""Artifact resolvers.

Resolvers turn a logical artifact name into its ABI and creation bytecode.
The file-based resolver reads Hardhat build output
(``artifacts/contracts/<path>/<Name>.sol/<Name>.json``).
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import ValidationError

from chaindeck.lib.errors import ArtifactNotFoundError, MalformedArtifactError
from chaindeck.lib.logging_config import get_logger
from chaindeck.models.artifact import Artifact

logger = get_logger(__name__)


class BaseArtifactResolver(ABC):
    """Abstract base class for artifact resolvers."""

    @abstractmethod
    def resolve(self, name: str) -> Artifact:
        """Return the artifact for a logical name.

        Raises:
            ArtifactNotFoundError: If no artifact exists for the name
            MalformedArtifactError: If the artifact lacks abi or bytecode
        """


class HardhatArtifactResolver(BaseArtifactResolver):
    """Resolve artifacts from Hardhat-style JSON files.

    Explicit ``paths`` mappings take precedence; otherwise each root is
    searched for ``<Name>.sol/<Name>.json`` and then ``<Name>.json``.
    """

    def __init__(
        self,
        roots: Sequence[str | Path] = (),
        paths: Mapping[str, str | Path] | None = None,
    ) -> None:
        self.roots = [Path(root) for root in roots]
        self.paths = {name: Path(path) for name, path in (paths or {}).items()}
        self._cache: dict[str, Artifact] = {}

    def resolve(self, name: str) -> Artifact:
        if name in self._cache:
            return self._cache[name]

        path = self._find(name)
        logger.debug(f"Loading artifact for {name} from {path}")
        artifact = self._load(name, path)
        self._cache[name] = artifact
        return artifact

    def _find(self, name: str) -> Path:
        if name in self.paths:
            path = self.paths[name]
            if not path.is_file():
                raise ArtifactNotFoundError(name, f"Artifact file not found: {path}")
            return path

        for root in self.roots:
            if not root.is_dir():
                continue
            matches = sorted(root.rglob(f"{name}.sol/{name}.json"))
            if not matches:
                matches = sorted(
                    p for p in root.rglob(f"{name}.json") if not p.name.endswith(".dbg.json")
                )
            if len(matches) > 1:
                raise ArtifactNotFoundError(
                    name,
                    f"Ambiguous artifact name, found {len(matches)} candidates under "
                    f"{root}; add an explicit entry to artifacts.paths",
                )
            if matches:
                return matches[0]

        searched = ", ".join(str(root) for root in self.roots) or "(no roots)"
        raise ArtifactNotFoundError(name, f"Unknown artifact; searched {searched}")

    @staticmethod
    def _load(name: str, path: Path) -> Artifact:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise MalformedArtifactError(name, f"Cannot read {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise MalformedArtifactError(name, f"{path} does not contain an object")

        missing = [key for key in ("abi", "bytecode") if not data.get(key)]
        if missing:
            raise MalformedArtifactError(
                name, f"Invalid artifact {path}: missing {' and '.join(missing)}"
            )

        try:
            return Artifact(
                name=name,
                abi=data["abi"],
                bytecode=data["bytecode"],
                source_path=str(path),
            )
        except ValidationError as exc:
            raise MalformedArtifactError(name, f"Invalid artifact {path}: {exc}") from exc
