"""CLI command for locating a summary window offset"""

import json
from datetime import datetime

import click

from logpulse.seeker import LogWindowSeeker
from logpulse.timestamps import get_window_parser


@click.command('seek')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--after',
    '-a',
    required=True,
    type=click.DateTime(formats=['%Y-%m-%d %H:%M:%S', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M', '%Y-%m-%d']),
    help='Window start time',
)
@click.option('--format', '-f', 'log_format', default='common', show_default=True, help='Log format')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
def seek_command(path: str, after: datetime, log_format: str, json_output: bool):
    """Print the byte offset where lines at or after a time begin.

    Scans backward from the end of the file and stops at the first older
    timestamp, so only the tail after the given time is read.

    \b
    Examples:
        logpulse seek /var/log/apache2/access.log --after '2024-01-15 00:00:00'
        logpulse seek app.log --after '2024-01-15 00:00' --format rails --json
    """
    try:
        parser = get_window_parser(log_format)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--format') from e

    seeker = LogWindowSeeker(path, parser)
    with seeker.open_window(after) as f:
        offset = f.tell()
        first_line = f.readline().decode('utf-8', errors='replace').rstrip('\r\n')

    if json_output:
        click.echo(json.dumps({'path': path, 'after': after.isoformat(), 'offset': offset, 'line': first_line}))
    else:
        click.echo(f'{path}:{offset}')
        click.echo(first_line)
