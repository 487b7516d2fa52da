from typing import List

from ape.logging import logger

from rollout.chain import ChainClient
from rollout.constants import FailurePolicy
from rollout.errors import ManifestConfigError, UnitDeployError
from rollout.manifest import Unit, UnitManifest
from rollout.placeholders import referenced_units


class DeploymentEngine:
    """
    Deploys every pending unit of a manifest, in declaration order.

    Units already marked deployed are skipped, so running the engine again
    over the same manifest is a no-op. Each new address is substituted into the
    arguments of the remaining units before the next one is deployed, which
    lets a unit reference any unit declared before it.

    With FailurePolicy.TOLERANT a failed unit is logged and left pending for
    the next run; with FailurePolicy.STRICT the first failure ends the run.
    """

    def __init__(
        self,
        client: ChainClient,
        manifest: UnitManifest,
        failure_policy: FailurePolicy = FailurePolicy.TOLERANT,
        track_upgrades: bool = False,
    ):
        self.client = client
        self.manifest = manifest
        self.failure_policy = failure_policy
        self.track_upgrades = track_upgrades

    def run(self) -> List[str]:
        """Returns the names of the units deployed by this run."""
        logger.info(f"Deploying {len(self.manifest)} unit(s) [{self.failure_policy.value}]")
        self.manifest.resolve_known_addresses()

        deployed = list()
        for unit in self.manifest:
            if unit.deployed:
                logger.info(f"Unit {unit.name} exists: {unit.address}")
                continue
            try:
                self._deploy_unit(unit)
            except UnitDeployError as e:
                if self.failure_policy is FailurePolicy.STRICT:
                    raise
                logger.error(str(e))
                continue
            deployed.append(unit.name)

        logger.info(f"Deployment done; {len(deployed)} new unit(s).")
        return deployed

    def _deploy_unit(self, unit: Unit) -> None:
        try:
            self._check_deployable(unit)
            if unit.only_deploy:
                address = self.client.deploy(unit.contract_name, unit.deploy_args)
                implementation = None
            else:
                proxy = self.client.deploy_proxy(unit.contract_name, unit.deploy_args)
                address, implementation = proxy.address, proxy.implementation
        except Exception as e:
            raise UnitDeployError(unit.name, e) from e

        unit.mark_deployed(
            address=address, implementation=implementation, track_upgrades=self.track_upgrades
        )
        logger.success(f"Unit {unit.name} deployed: {address}")
        self.manifest.resolve(unit.name, address)

    @staticmethod
    def _check_deployable(unit: Unit) -> None:
        if unit.address:
            raise ManifestConfigError(
                f"has address {unit.address} but is not marked deployed; "
                "fix the manifest entry before deploying"
            )
        unresolved = referenced_units(unit.deploy_args)
        if unresolved:
            raise ManifestConfigError(f"unresolved reference(s) to {', '.join(unresolved)}")
