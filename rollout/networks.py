from ape import networks

from rollout.constants import LOCAL_NETWORKS


def is_local_network() -> bool:
    """Returns True when connected to a local development network."""
    return networks.provider.network.name in LOCAL_NETWORKS


def network_choice() -> str:
    """Returns the `<ecosystem>:<network>` choice of the active provider, e.g. 'polygon:amoy'."""
    network = networks.provider.network
    return f"{network.ecosystem.name}:{network.name}"
