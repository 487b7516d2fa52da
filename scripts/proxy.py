#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from rollout.chain import ApeChainClient
from rollout.options import autosign_option, manifest_dir_option
from rollout.pipeline import deploy_and_upgrade


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@manifest_dir_option
@autosign_option
def cli(network, account, manifest_dir, autosign):
    """
    Deploys the pending units behind upgradeable proxies (plain contracts
    for units marked onlyDeploy), then upgrades every deployed unit whose
    `upgraded` flag is false. Failed units are logged and retried on the
    next run.

    To roll out a new implementation, set `upgraded` to false for the unit
    and run:

    ape run proxy --network bsc:testnet:node --account deployer
    """
    client = ApeChainClient(account=account, autosign=autosign)
    deploy_and_upgrade(directory=manifest_dir, client=client)


if __name__ == "__main__":
    cli()
