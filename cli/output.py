#!/usr/bin/env python3
"""
Output Formatting Module for relaysig CLI

Two channels are kept apart: the public result (the signed event) goes to
stdout, everything private to this operator (combined key, secret nonce,
the command for the next signer) goes to stderr.
"""

import json
from typing import Any

import click
import yaml

from ceremony import CeremonyAdvanced, CeremonyComplete, encode_resume_command


class OutputFormatter:
    """Output formatter for CLI results."""

    def __init__(self, format_type: str = 'json'):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (json, yaml)
        """
        self.format_type = format_type

    def format(self, data: Any) -> str:
        if self.format_type == 'yaml':
            return self.format_yaml(data)
        return self.format_json(data)

    def format_json(self, data: Any) -> str:
        """Format data as JSON."""
        return json.dumps(data, ensure_ascii=False)

    def format_yaml(self, data: Any) -> str:
        """Format data as YAML."""
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip('\n')


def print_private(message: str):
    """Write to the operator-only channel."""
    click.echo(message, err=True)


def report_advanced(outcome: CeremonyAdvanced, program: str):
    """
    Print the private output of a step that did not finish the ceremony.
    """
    command = encode_resume_command(outcome.event, outcome.state,
                                    include_secret_nonce=outcome.awaiting_secret_nonce,
                                    program=program)

    if outcome.combined_key is not None:
        print_private(f"combined key: {outcome.combined_key.hex()}\n")

    if outcome.secret_nonce is not None:
        print_private("the following code should be saved secretly until the next step "
                      "and included with --musig2-nonce-secret:")
        print_private(f"{outcome.secret_nonce_b64}\n")

    print_private("the next signer should call this on their side:")
    print_private(command)


def report_complete(outcome: CeremonyComplete, formatter: OutputFormatter):
    """
    Print the signed event to stdout.
    """
    print_private(f"combined key: {outcome.combined_key.hex()}\n")
    click.echo(formatter.format(outcome.event.to_dict()))
