#!/usr/bin/env python3
"""
Configuration Commands for relaysig CLI

Inspect and validate the merged configuration. The secret key is never shown.
"""

import sys
from typing import Optional

import click

from cli.context import CLIContext, pass_context, handle_cli_error
from cli.output import OutputFormatter


@click.group()
@pass_context
def config(ctx: CLIContext):
    """
    Configuration inspection commands.
    """
    if ctx.config is None:
        ctx.load_config()


@config.command('show')
@click.option('--key', help='Specific configuration key to show (dot notation)')
@click.option('--sources', is_flag=True, help='Show configuration sources')
@click.option('--format', 'output_format', type=click.Choice(['json', 'yaml']),
              default='yaml', help='Output format')
@pass_context
@handle_cli_error
def show_config(ctx: CLIContext, key: Optional[str], sources: bool, output_format: str):
    """
    Display current configuration settings.

    Examples:
        relaysig config show
        relaysig config show --key cli.program
        relaysig config show --sources
    """
    if sources:
        for i, source in enumerate(ctx.config.get_sources(), 1):
            click.echo(f"{i}. {source}")
        return

    data = ctx.config.redacted()
    if key:
        for part in key.split('.'):
            if not isinstance(data, dict) or part not in data:
                click.echo(f"Configuration key not found: {key}", err=True)
                sys.exit(1)
            data = data[part]
        if not isinstance(data, dict):
            click.echo(f"{key}: {data}")
            return

    click.echo(OutputFormatter(output_format).format(data))


@config.command('validate')
@pass_context
@handle_cli_error
def validate_config(ctx: CLIContext):
    """
    Validate the merged configuration.
    """
    errors = ctx.config.validate()
    if errors:
        for error in errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)
    click.echo("Configuration is valid.")
