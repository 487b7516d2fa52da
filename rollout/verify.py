from typing import List

from ape.logging import logger

from rollout.chain import ChainClient
from rollout.manifest import Unit, UnitManifest


def verification_address(unit: Unit) -> str:
    """The implementation address for upgraded proxies, the unit address otherwise."""
    if unit.upgraded and unit.upgraded_address:
        return unit.upgraded_address
    return unit.address


def verify_units(client: ChainClient, manifest: UnitManifest) -> List[str]:
    """
    Publishes the source of every unverified unit with a known address.
    Errors are not caught; units verified before the error stay marked.
    """
    verified = list()
    for unit in manifest:
        if unit.verified:
            continue
        address = verification_address(unit)
        if not address:
            continue
        logger.info(f"Verifying {unit.name} at {address}...")
        client.verify(address, list(unit.constructor_args or []))
        unit.mark_verified()
        verified.append(unit.name)
    return verified
