"""Chain clients for ChainDeck deployments."""

from __future__ import annotations

from chaindeck.deploy.clients.base import BaseChainClient
from chaindeck.lib.errors import ConfigError
from chaindeck.models.plan import DeploymentPlan


def create_chain_client(plan: DeploymentPlan) -> BaseChainClient:
    """Create a chain client based on the plan's RPC configuration."""
    if plan.rpc is None:
        raise ConfigError(
            field="rpc",
            message=(
                "No 'rpc' section found in the plan. "
                "Add rpc.url or set CHAINDECK_RPC_URL."
            ),
        )

    from chaindeck.deploy.clients.jsonrpc import JsonRpcChainClient

    return JsonRpcChainClient(plan.rpc)


__all__ = ["BaseChainClient", "create_chain_client"]
