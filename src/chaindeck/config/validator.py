"""Validation utilities for ChainDeck plans."""

from pydantic import ValidationError as PydanticValidationError

# Discriminator tags pydantic inserts into locations of union members
_STEP_KINDS = {"deploy", "configure", "checkpoint"}


def format_location(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as a plan path.

    ``("steps", 2, "configure", "action")`` becomes ``steps[2].action``.
    """
    parts: list[str] = []
    previous: int | str | None = None
    for item in loc:
        if isinstance(item, int):
            parts.append(f"[{item}]")
        elif not (isinstance(previous, int) and item in _STEP_KINDS):
            parts.append(f".{item}" if parts else str(item))
        previous = item
    return "".join(parts) or "plan"


def flatten_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten Pydantic ValidationError into human-readable messages.

    Args:
        exc: Pydantic ValidationError exception

    Returns:
        List of human-readable error messages, one per field error
    """
    errors: list[str] = []

    for error in exc.errors():
        field_path = format_location(tuple(error.get("loc", ())))
        msg = error.get("msg", "Unknown error")

        if error.get("type") == "value_error":
            formatted = f"Field '{field_path}': {msg} (received: {error.get('input')!r})"
        else:
            formatted = f"Field '{field_path}': {msg}"

        errors.append(formatted)

    return errors if errors else ["Validation failed with unknown error"]
