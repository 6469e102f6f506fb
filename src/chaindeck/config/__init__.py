"""Configuration loading and validation for ChainDeck plans.

Main components:
- PlanLoader: Load and validate plan YAML files
- Environment variable substitution (${VAR_NAME} pattern)
- Validation utilities for configuration data
"""

from chaindeck.config.env_loader import get_env_var, load_env_file, substitute_env_vars
from chaindeck.config.loader import PlanLoader, load_plan

__all__ = [
    "PlanLoader",
    "load_plan",
    "substitute_env_vars",
    "get_env_var",
    "load_env_file",
]
