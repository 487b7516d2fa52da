"""
Load -> mutate -> persist scopes for each rollout pipeline.

Every function reads its manifest(s) once, hands them to the engines and
writes them back before returning, including when an engine raises, so the
manifests always record the progress made so far. Only one process may run
against a manifest directory at a time; concurrent runs overwrite each
other's results.
"""

from pathlib import Path
from typing import List, Optional

from ape.logging import logger

from rollout.calls import CallEngine, SweepResult, resolve_call_directives
from rollout.chain import ChainClient
from rollout.config import ConfirmationPolicy, RolloutConfig
from rollout.constants import CALLS_MANIFEST_STEM, UNITS_MANIFEST_STEM, FailurePolicy
from rollout.deploy import DeploymentEngine
from rollout.manifest import CallManifest, UnitManifest
from rollout.upgrade import UpgradeEngine
from rollout.utils import manifest_filepath
from rollout.verify import verify_units


def load_units(directory: Path, chain_id: Optional[int] = None) -> UnitManifest:
    filepath = manifest_filepath(directory, UNITS_MANIFEST_STEM, chain_id)
    logger.info(f"Units manifest: {filepath}")
    manifest = UnitManifest.from_file(filepath)
    manifest.validate()
    return manifest


def load_calls(directory: Path, chain_id: Optional[int] = None) -> CallManifest:
    filepath = manifest_filepath(directory, CALLS_MANIFEST_STEM, chain_id)
    logger.info(f"Call manifest: {filepath}")
    return CallManifest.from_file(filepath)


def deploy_units(
    directory: Path,
    client: ChainClient,
    failure_policy: Optional[FailurePolicy] = None,
    config: Optional[RolloutConfig] = None,
) -> UnitManifest:
    """Plain pipeline: deploys pending units; strict unless configured otherwise."""
    config = config or RolloutConfig.from_directory(directory)
    failure_policy = failure_policy or config.failure_policy("deploy")
    manifest = load_units(directory, client.chain_id)
    try:
        DeploymentEngine(client, manifest, failure_policy=failure_policy).run()
    finally:
        manifest.write()
    return manifest


def deploy_and_upgrade(
    directory: Path,
    client: ChainClient,
    failure_policy: Optional[FailurePolicy] = None,
    config: Optional[RolloutConfig] = None,
) -> UnitManifest:
    """Proxy pipeline: deploys pending units, then upgrades deployed ones not yet upgraded."""
    config = config or RolloutConfig.from_directory(directory)
    failure_policy = failure_policy or config.failure_policy("proxy")
    manifest = load_units(directory, client.chain_id)
    try:
        DeploymentEngine(
            client, manifest, failure_policy=failure_policy, track_upgrades=True
        ).run()
        UpgradeEngine(client, manifest).run()
    finally:
        manifest.write()
    return manifest


def run_calls(
    directory: Path,
    client: ChainClient,
    confirmation: Optional[ConfirmationPolicy] = None,
    config: Optional[RolloutConfig] = None,
) -> SweepResult:
    """Post-deploy pipeline: invokes the pending call directives once each."""
    config = config or RolloutConfig.from_directory(directory)
    confirmation = confirmation or config.confirmation_policy(chain_id=client.chain_id)
    units = load_units(directory, client.chain_id)
    calls = load_calls(directory, client.chain_id)
    resolve_call_directives(calls, units)
    try:
        result = CallEngine(client, calls, confirmation=confirmation).run()
    finally:
        calls.write()
    return result


def verify_all(directory: Path, client: ChainClient) -> List[str]:
    """Verification sweep over every unit not yet verified."""
    manifest = load_units(directory, client.chain_id)
    try:
        verified = verify_units(client, manifest)
    finally:
        manifest.write()
    logger.info(f"Verification done; {len(verified)} unit(s) verified.")
    return verified
