class RolloutError(Exception):
    """Base class for errors raised by the rollout pipelines."""


class ManifestConfigError(RolloutError, ValueError):
    """Raised when a manifest is well-formed JSON but describes an invalid rollout."""


class ManifestParseError(RolloutError):
    """Raised when a manifest file exists but cannot be parsed."""

    def __init__(self, filepath, error: Exception):
        self.filepath = filepath
        self.error = error
        super().__init__(f"Cannot parse manifest at {filepath}: {error}")


class _ItemError(RolloutError):
    action = "process"

    def __init__(self, name: str, error: Exception):
        self.name = name
        self.error = error
        super().__init__(f"Failed to {self.action} {name}: {error}")


class UnitDeployError(_ItemError):
    action = "deploy"


class UnitUpgradeError(_ItemError):
    action = "upgrade"


class CallInvocationError(_ItemError):
    action = "call"


class ConfirmationTimeout(RolloutError):
    """Raised when a transaction receipt does not appear within the confirmation policy."""

    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(f"Transaction {tx_hash} not confirmed after {timeout} seconds")
