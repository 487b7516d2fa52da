from pathlib import Path

import click

from rollout.constants import MANIFESTS_DIR

manifest_dir_option = click.option(
    "--manifest-dir",
    "-m",
    help="Directory holding the .data.json / .setup.json manifests",
    type=click.Path(file_okay=False, path_type=Path),
    default=MANIFESTS_DIR,
    show_default=True,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation",
    is_flag=True,
    default=False,
)
