#!/usr/bin/env python3
"""
Shared CLI context, logging setup and error handling for relaysig commands.
"""

import sys
import logging
import functools
import traceback
from typing import Optional

import click

from ceremony import CeremonyError
from cli.config import ConfigurationManager, ConfigurationError

# Loggers that receive the CLI's stderr handler
LOGGER_NAMES = ('relaysig', 'ceremony', 'musig_crypto')


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.verbose: int = 0
        self.config: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('relaysig')

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        for name in LOGGER_NAMES:
            logger = logging.getLogger(name)
            logger.setLevel(level)
            for old in list(logger.handlers):
                logger.removeHandler(old)
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    def load_config(self):
        """Load configuration from defaults, files and environment."""
        self.config = ConfigurationManager(self.config_file)
        self.config.load()
        self.logger.debug(f"Configuration sources: {', '.join(self.config.get_sources())}")


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator turning ceremony and configuration errors into a clean exit."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("\nOperation cancelled by user.", err=True)
            sys.exit(130)
        except (CeremonyError, ConfigurationError) as e:
            ctx = click.get_current_context().find_object(CLIContext)

            click.echo(f"Error: {e}", err=True)
            if ctx and ctx.verbose >= 2:
                # Show full traceback in debug mode
                click.echo(traceback.format_exc(), err=True)
            else:
                click.echo("Use -vv for detailed error information.", err=True)

            sys.exit(1)

    return wrapper
