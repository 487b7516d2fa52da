#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from rollout.chain import ApeChainClient, check_etherscan_plugin
from rollout.options import manifest_dir_option
from rollout.pipeline import verify_all


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@manifest_dir_option
def cli(network, account, manifest_dir):
    """Publishes the source of every deployed unit not yet marked verified."""
    check_etherscan_plugin()
    client = ApeChainClient(account=account)
    verify_all(directory=manifest_dir, client=client)


if __name__ == "__main__":
    cli()
