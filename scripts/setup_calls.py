#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from rollout.chain import ApeChainClient
from rollout.config import RolloutConfig
from rollout.networks import network_choice
from rollout.options import autosign_option, manifest_dir_option
from rollout.pipeline import run_calls


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@manifest_dir_option
@autosign_option
def cli(network, account, manifest_dir, autosign):
    """
    Performs the post-deploy calls listed in .setup.json (wiring pools to
    tokens, granting roles, ...). Each call is made once; a failed sweep is
    resumed from the failed call by running the command again.
    """
    client = ApeChainClient(account=account, autosign=autosign)
    config = RolloutConfig.from_directory(manifest_dir)
    confirmation = config.confirmation_policy(
        network=network_choice(), chain_id=client.chain_id
    )
    result = run_calls(
        directory=manifest_dir, client=client, confirmation=confirmation, config=config
    )
    if result.aborted:
        raise click.ClickException(str(result.error))


if __name__ == "__main__":
    cli()
