"""ChainDeck command-line entry point."""

import click

from chaindeck import __version__
from chaindeck.cli.commands.deploy import deploy


@click.group()
@click.version_option(__version__, prog_name="chaindeck")
def main() -> None:
    """ChainDeck - resumable contract deployments from YAML plans."""


main.add_command(deploy)


if __name__ == "__main__":  # pragma: no cover
    main()
