"""Liveness checks for cached unit addresses."""

from __future__ import annotations

from enum import Enum

from eth_utils import is_address

from chaindeck.deploy.clients.base import BaseChainClient
from chaindeck.lib.errors import ChainClientError
from chaindeck.lib.logging_config import get_logger

logger = get_logger(__name__)


class Liveness(str, Enum):
    """Whether a cached address still holds a deployed instance."""

    LIVE = "live"
    ABSENT = "absent"


def check_liveness(client: BaseChainClient, address: str | None) -> Liveness:
    """Ask the chain whether a live, non-empty instance exists at ``address``.

    Invalid addresses and failed queries count as absent, so doubtful
    state leads to a redeploy rather than to trusting a stale entry.
    """
    if not address or not isinstance(address, str) or not is_address(address):
        logger.debug(f"Address {address!r} is not a valid address")
        return Liveness.ABSENT

    try:
        present = client.has_code(address)
    except ChainClientError as exc:
        logger.warning(f"Code lookup for {address} failed, treating as absent: {exc}")
        return Liveness.ABSENT

    return Liveness.LIVE if present else Liveness.ABSENT
