"""Classification of configuration-action failures.

Targets report "already configured" only as free text in revert messages,
so recognising it means matching known phrases. All of that matching lives
here.
"""

from __future__ import annotations

from collections.abc import Iterable

from chaindeck.lib.errors import ChainClientError


def error_text(error: BaseException) -> str:
    """Return the message used for classification."""
    if isinstance(error, ChainClientError):
        return error.message
    return str(error)


def matching_signature(error: BaseException, signatures: Iterable[str]) -> str | None:
    """Return the first signature contained in the error message, if any.

    Matching is a case-sensitive substring test.
    """
    text = error_text(error)
    for signature in signatures:
        if signature and signature in text:
            return signature
    return None


def is_already_done(error: BaseException, signatures: Iterable[str]) -> bool:
    """Return True if the error means the action was already performed."""
    return matching_signature(error, signatures) is not None
