#!/usr/bin/env python3
"""
relaysig - Command Line Interface

Hand-relayed MuSig2 signing of Nostr events. Each signer runs one command,
then passes the printed command on to the next signer until the last one
outputs the signed event.
"""

import sys
from typing import Optional

import click

from cli.config import ConfigurationError
from cli.context import CLIContext, pass_context
from cli.commands.event import event
from cli.commands.config import config


@click.group(invoke_without_command=True,
             context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file',
              type=click.Path(dir_okay=False),
              help='Path to configuration file')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.option('--version',
              is_flag=True,
              help='Show version information')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], verbose: int, version: bool):
    """
    relaysig - MuSig2 signing ceremonies for Nostr events

    Examples:
        relaysig event --sec <key> --musig2 2 -c 'hello from two keys'
        relaysig config show --sources
    """
    if version:
        from cli import __version__
        click.echo(f"relaysig v{__version__}")
        sys.exit(0)

    click_ctx = click.get_current_context()
    if click_ctx.invoked_subcommand is None:
        click.echo(click_ctx.get_help())
        return

    ctx.config_file = config_file
    ctx.verbose = verbose

    ctx.setup_logging()
    try:
        ctx.load_config()
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    ctx.logger.debug("CLI initialized with context")


cli.add_command(event)
cli.add_command(config)


def main():
    """Console script entry point."""
    cli()


if __name__ == '__main__':
    main()
