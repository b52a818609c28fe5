#!/usr/bin/env python3
"""
Event Signing Command for relaysig CLI

Runs one step of a MuSig2 signing ceremony over a Nostr event. Each run
either prints the command the next signer has to execute, or, on the last
step, the signed event.
"""

import time
import logging
from typing import Optional, Tuple

import click

from ceremony import Event, advance, parse_inputs, parse_tag
from ceremony.resume import SECRET_KEY_PLACEHOLDER, SECRET_NONCE_PLACEHOLDER
from cli.config import resolve_secret_key
from cli.context import CLIContext, pass_context, handle_cli_error
from cli.output import OutputFormatter, report_advanced, report_complete


logger = logging.getLogger('relaysig.event')


def _reject_placeholder(value: Optional[str], placeholder: str, option: str):
    if value == placeholder:
        raise click.BadParameter(f"replace {placeholder} with your own value", param_hint=option)


@click.command('event')
@click.option('--sec', help='Secret key in hex (or set RELAYSIG_SIGNER_SEC)')
@click.option('--insecure-test-key', is_flag=True,
              help='Sign with the publicly known key 1 when no key is set. Tests only.')
@click.option('--musig2', 'num_signers', type=int, required=True,
              help='Total number of MuSig2 signers')
@click.option('-k', '--kind', type=int, default=1, show_default=True, help='Event kind')
@click.option('-ts', '--created-at', type=int, help='Event timestamp (default: now)')
@click.option('-c', '--content', default='', help='Event content')
@click.option('-t', '--tag', 'tags', multiple=True, help='Tag as key=value1;value2')
@click.option('--musig2-pubkey', 'pubkeys', multiple=True, help='Known signer public key (hex)')
@click.option('--musig2-nonce', 'pubnonces', multiple=True, help='Known public nonce (hex)')
@click.option('--musig2-partial', 'partials', multiple=True, help='Known partial signature (hex)')
@click.option('--musig2-nonce-secret', 'secret_nonce',
              help='Secret nonce saved from your earlier step (base64)')
@pass_context
@handle_cli_error
def event(ctx: CLIContext, sec: Optional[str], insecure_test_key: bool, num_signers: int,
          kind: int, created_at: Optional[int], content: str, tags: Tuple[str, ...],
          pubkeys: Tuple[str, ...], pubnonces: Tuple[str, ...], partials: Tuple[str, ...],
          secret_nonce: Optional[str]):
    """
    Run one step of a MuSig2 signing ceremony.

    Private output (combined key, secret nonce, next command) is written to
    stderr. The signed event is written to stdout once the last signer runs.

    Examples:
        relaysig event --sec <key> --musig2 2 -c 'hello'
    """
    _reject_placeholder(sec, SECRET_KEY_PLACEHOLDER, '--sec')
    _reject_placeholder(secret_nonce, SECRET_NONCE_PLACEHOLDER, '--musig2-nonce-secret')

    if ctx.config is None:
        ctx.load_config()

    secret_key_hex = resolve_secret_key(ctx.config, sec, insecure_test_key)
    inputs = parse_inputs(secret_key_hex, num_signers, pubkeys, pubnonces,
                          secret_nonce, partials)

    unsigned = Event(
        kind=kind,
        created_at=created_at if created_at is not None else int(time.time()),
        content=content,
        tags=tuple(parse_tag(tag) for tag in tags),
    )

    outcome = advance(inputs, unsigned)
    logger.info(f"Step finished in phase {outcome.phase.value}, complete={outcome.is_complete}")

    if outcome.is_complete:
        report_complete(outcome, OutputFormatter(ctx.config.get('cli.output', 'json')))
    else:
        report_advanced(outcome, ctx.config.get('cli.program', 'relaysig'))
