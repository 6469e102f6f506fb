"""Default configuration values for ChainDeck."""

# Ledger layout
LEDGER_FILENAME = "deployment-state.json"
ARCHIVE_PREFIX = "deployment-complete-"

# Environment variables
RPC_URL_ENV_VAR = "CHAINDECK_RPC_URL"
ENV_FILE_NAME = ".env"
