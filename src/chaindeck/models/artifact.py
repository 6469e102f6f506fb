"""Compiled artifact model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Artifact(BaseModel):
    """Interface descriptor and creation bytecode for a deployable unit."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(..., description="Logical artifact name")
    abi: list[dict[str, Any]] = Field(..., description="Interface descriptor")
    bytecode: str = Field(..., description="Hex-encoded creation bytecode")
    source_path: str | None = Field(
        default=None, description="File the artifact was loaded from"
    )

    @field_validator("bytecode")
    @classmethod
    def validate_bytecode(cls, v: str) -> str:
        """Require non-empty hex bytecode with a 0x prefix."""
        value = v if v.startswith("0x") else f"0x{v}"
        body = value[2:]
        if not body:
            raise ValueError("bytecode is empty (abstract contract or interface?)")
        if len(body) % 2 or any(c not in "0123456789abcdefABCDEF" for c in body):
            raise ValueError("bytecode is not valid hex (unlinked libraries?)")
        return value

    def constructor_inputs(self) -> list[dict[str, Any]]:
        """Return the ABI inputs of the constructor, empty when there is none."""
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return list(entry.get("inputs", []))
        return []
