#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from rollout.chain import ApeChainClient
from rollout.constants import FailurePolicy
from rollout.options import autosign_option, manifest_dir_option
from rollout.pipeline import deploy_units


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@manifest_dir_option
@autosign_option
@click.option(
    "--failure-policy",
    "-p",
    help="Stop at the first failed unit (strict) or log it and carry on (tolerant); "
    "defaults to the rollout.yml setting, else strict",
    type=click.Choice([policy.value for policy in FailurePolicy]),
    required=False,
)
def cli(network, account, manifest_dir, autosign, failure_policy):
    """
    Deploys the pending units of the manifest in declaration order.

    Already deployed units are skipped, so the command can be repeated after
    a failure until every unit is deployed:

    ape run deploy --network bsc:testnet:node --account deployer
    """
    client = ApeChainClient(account=account, autosign=autosign)
    deploy_units(
        directory=manifest_dir,
        client=client,
        failure_policy=FailurePolicy(failure_policy) if failure_policy else None,
    )


if __name__ == "__main__":
    cli()
