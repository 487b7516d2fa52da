from typing import List

from ape.logging import logger

from rollout.chain import ChainClient
from rollout.errors import UnitUpgradeError
from rollout.manifest import Unit, UnitManifest


class UpgradeEngine:
    """
    Upgrades, in place, every deployed proxy unit not yet marked upgraded.
    Plain (onlyDeploy) units have no proxy and are never touched.

    The proxy address recorded in the manifest is kept; only the
    implementation behind it changes. Failures are logged and leave the unit
    pending for the next run.
    """

    def __init__(self, client: ChainClient, manifest: UnitManifest):
        self.client = client
        self.manifest = manifest

    @staticmethod
    def needs_upgrade(unit: Unit) -> bool:
        return (
            unit.deployed and bool(unit.address) and not unit.upgraded and not unit.only_deploy
        )

    def run(self) -> List[str]:
        """Returns the names of the units upgraded by this run."""
        logger.info("Upgrading units...")
        upgraded = list()
        for unit in self.manifest:
            if not self.needs_upgrade(unit):
                continue
            try:
                self._upgrade_unit(unit)
            except UnitUpgradeError as e:
                logger.error(str(e))
                continue
            upgraded.append(unit.name)

        logger.info(f"Upgrade done; {len(upgraded)} unit(s) upgraded.")
        return upgraded

    def _upgrade_unit(self, unit: Unit) -> None:
        try:
            implementation = self.client.upgrade_proxy(unit.address, unit.contract_name)
        except Exception as e:
            raise UnitUpgradeError(unit.name, e) from e
        unit.mark_upgraded(implementation=implementation)
        logger.success(f"Unit {unit.name} upgraded: {unit.address} -> {implementation}")
