import typing
from pathlib import Path
from typing import Any, Dict, Optional, Union

from rollout.constants import (
    CONFIG_FILENAME,
    DEFAULT_BACKOFF,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_FAILURE_POLICIES,
    DEFAULT_MAX_POLL_INTERVAL,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SETTLE_DELAY,
    FailurePolicy,
)
from rollout.errors import ManifestConfigError
from rollout.utils import _load_yaml


class ConfirmationPolicy(typing.NamedTuple):
    """How long, and how often, to poll for a transaction receipt (seconds)."""

    poll_interval: float = DEFAULT_POLL_INTERVAL
    settle_delay: float = DEFAULT_SETTLE_DELAY
    timeout: Optional[float] = DEFAULT_CONFIRMATION_TIMEOUT
    backoff: float = DEFAULT_BACKOFF
    max_interval: float = DEFAULT_MAX_POLL_INTERVAL

    def updated(self, overrides: Dict[str, Any]) -> "ConfirmationPolicy":
        unknown = set(overrides) - set(self._fields)
        if unknown:
            raise ManifestConfigError(
                f"Unknown confirmation settings: {', '.join(sorted(unknown))}"
            )
        return self._replace(**overrides)


class RolloutConfig:
    """
    Optional `rollout.yml` found next to the manifests, e.g.:

        failure_policy:
          deploy: strict
          proxy: tolerant
        confirmations:
          default:
            poll_interval: 1
            timeout: 600
          networks:
            "polygon:amoy": {timeout: 1200}
            80002: {settle_delay: 2}
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or dict()

    @classmethod
    def from_directory(cls, directory: Path) -> "RolloutConfig":
        filepath = Path(directory) / CONFIG_FILENAME
        if not filepath.exists():
            return cls()
        return cls.from_yaml(filepath)

    @classmethod
    def from_yaml(cls, filepath: Path) -> "RolloutConfig":
        config = _load_yaml(filepath) or dict()
        if not isinstance(config, dict):
            raise ManifestConfigError(f"Malformed rollout configuration at {filepath}.")
        return cls(config=config)

    def failure_policy(self, pipeline: str) -> FailurePolicy:
        policies = self.config.get("failure_policy") or dict()
        value = policies.get(pipeline)
        if value is None:
            return DEFAULT_FAILURE_POLICIES[pipeline]
        try:
            return FailurePolicy(value)
        except ValueError:
            raise ManifestConfigError(
                f"Invalid failure policy '{value}' for {pipeline}; "
                f"expected one of {[p.value for p in FailurePolicy]}"
            )

    def confirmation_policy(
        self, network: Optional[str] = None, chain_id: Optional[Union[int, str]] = None
    ) -> ConfirmationPolicy:
        """
        Returns the default confirmation policy, overridden by the entry for
        the network choice (e.g. "ethereum:sepolia") and then by the entry for
        the chain id.
        """
        confirmations = self.config.get("confirmations") or dict()
        policy = ConfirmationPolicy().updated(confirmations.get("default") or dict())
        networks = confirmations.get("networks") or dict()
        for key in (network, chain_id):
            if key is None:
                continue
            overrides = networks.get(key, networks.get(str(key)))
            if overrides:
                policy = policy.updated(overrides)
        return policy
