"""Custom exception hierarchy for ChainDeck configuration and deployments."""

from __future__ import annotations


class ChainDeckError(Exception):
    """Base exception for all ChainDeck errors.

    All ChainDeck-specific exceptions inherit from this class, enabling
    centralized exception handling at the CLI boundary.
    """

    pass


class ConfigError(ChainDeckError):
    """Exception raised for configuration errors.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class PlanError(ConfigError):
    """Exception raised when a deployment plan is inconsistent.

    Raised at load time for ordering and reference problems, and at run time
    when a step references a unit whose address is not in the ledger.
    """

    def __init__(self, message: str, step_id: str | None = None) -> None:
        self.step_id = step_id
        field = f"steps[{step_id}]" if step_id is not None else "steps"
        super().__init__(field, message)


class FileNotFoundError(ChainDeckError):
    """Exception raised when a plan file is not found.

    Attributes:
        path: Path to the file that was not found
        message: Human-readable error message
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"File not found: {path}\n{message}")


class ArtifactError(ChainDeckError):
    """Base exception for artifact resolution failures.

    Attributes:
        name: Logical artifact name that failed to resolve
        message: Human-readable error message
    """

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        self.message = message
        super().__init__(f"Artifact '{name}': {message}")


class ArtifactNotFoundError(ArtifactError):
    """Raised when no artifact file exists for a logical name."""


class MalformedArtifactError(ArtifactError):
    """Raised when an artifact file is unreadable or lacks abi/bytecode."""


class ChainClientError(ChainDeckError):
    """Exception raised when a chain client operation fails.

    Attributes:
        operation: Client operation that failed (e.g. "deploy", "invoke")
        message: Error message, verbatim from the node where available
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class ChainConnectionError(ChainClientError):
    """Error raised when the RPC endpoint is unreachable.

    Attributes:
        endpoint: The RPC endpoint that failed
    """

    def __init__(
        self, endpoint: str, operation: str, original_error: Exception | None = None
    ) -> None:
        self.endpoint = endpoint
        message = (
            f"Failed to connect to RPC endpoint at {endpoint}.\n"
            f"Check the endpoint URL is correct and the node is reachable."
        )
        if original_error:
            message += f"\nOriginal error: {original_error}"
        super().__init__(operation, message)


class TransactionFailedError(ChainClientError):
    """Raised when a transaction is rejected or mined with a failed status.

    Attributes:
        tx_hash: Transaction hash, when the transaction made it on chain
    """

    def __init__(
        self, operation: str, message: str, tx_hash: str | None = None
    ) -> None:
        self.tx_hash = tx_hash
        super().__init__(operation, message)


class ConfirmationTimeoutError(ChainClientError):
    """Raised when a submitted transaction is not confirmed in time."""

    def __init__(self, operation: str, tx_hash: str, timeout: float) -> None:
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(
            operation,
            f"Transaction {tx_hash} was not confirmed within {timeout:g} seconds",
        )


class LedgerError(ChainDeckError):
    """Exception raised when the deployment ledger cannot be persisted or used.

    Attributes:
        path: Ledger file path involved
        message: Human-readable error message
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"Ledger error at {path}: {message}")


class DeploymentAborted(ChainDeckError):
    """Raised by the orchestrator when a plan step fails fatally.

    The ledger is left at its last flushed checkpoint, so the next run
    resumes from there.

    Attributes:
        step_id: Identifier of the failing step
        description: Description of the failing step
        cause: The underlying exception
    """

    def __init__(self, step_id: str, description: str, cause: Exception) -> None:
        self.step_id = step_id
        self.description = description
        self.cause = cause
        super().__init__(f"Step {step_id} ({description}) failed: {cause}")
