"""CLI command for inspecting persisted state"""

import json
import sys

import click

from logpulse.errors import StateError
from logpulse.state import JsonStateStore
from logpulse.utils import get_str_env


@click.command('state')
@click.option('--state-file', type=click.Path(dir_okay=False), help='Persisted state file')
@click.option('--reset', is_flag=True, help='Delete persisted state (next run re-seeds)')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
def state_command(state_file: str | None, reset: bool, json_output: bool):
    """Show or reset the watermark and last summary time.

    \b
    Examples:
        logpulse state
        logpulse state --json
        logpulse state --reset

    \b
    Environment:
        LOGPULSE_STATE_FILE, LOGPULSE_STATE_DIR
    """
    # Resolved like the state_file option of check
    state_file = state_file or get_str_env('LOGPULSE_STATE_FILE', None)

    try:
        store = JsonStateStore(state_file)
        if reset:
            store.clear()
    except StateError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(3)

    if reset:
        if json_output:
            click.echo(json.dumps({'path': str(store.path), 'reset': True}))
        else:
            click.echo(f'State reset: {store.path}')
        return

    values = store.items()
    if json_output:
        click.echo(
            json.dumps({'path': str(store.path), 'values': {k: v.isoformat() for k, v in values.items()}}, indent=2)
        )
        return

    click.echo(f'State file: {store.path}')
    if not values:
        click.echo('  (empty)')
    for key, value in sorted(values.items()):
        click.echo(f'  {key}: {value:%Y-%m-%d %H:%M:%S}')
