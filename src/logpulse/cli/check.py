"""CLI command running one monitor invocation"""

import json
import sys
from datetime import datetime

import click

from logpulse.config import load_config
from logpulse.errors import ConfigurationError, LogReadError, StateError
from logpulse.monitor import Monitor
from logpulse.utils import configure_logging


@click.command('check')
@click.argument('log_arg', metavar='[LOG]', required=False)
@click.option('--log', '-l', 'log_path', help='Full path to the Apache log file')
@click.option('--format', '-f', 'log_format', help="Log format name or LogFormat string (default: common)")
@click.option('--run-time', '-t', 'run_time', help='Daily summary run time HH:MM (default: 23:45)')
@click.option('--seek-format', help='Timestamp format used to locate the summary window (default: --format)')
@click.option('--state-file', type=click.Path(dir_okay=False), help='Persisted state file')
@click.option('--metrics-file', type=click.Path(dir_okay=False), help='Write prometheus textfile metrics here')
@click.option(
    '--last-run',
    type=click.DateTime(formats=['%Y-%m-%d %H:%M:%S', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M']),
    help='When the previous invocation ran (default: the time persisted by the previous run)',
)
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--no-color', is_flag=True, help='Disable colored output')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def check_command(
    log_arg: str | None,
    log_path: str | None,
    log_format: str | None,
    run_time: str | None,
    seek_format: str | None,
    state_file: str | None,
    metrics_file: str | None,
    last_run: datetime | None,
    json_output: bool,
    no_color: bool,
    verbose: bool,
):
    """Report the request rate and run the daily summary when due.

    Meant to be invoked every few minutes by cron or a monitoring agent.
    Only lines newer than the previous run are read.

    \b
    Examples:
        logpulse /var/log/apache2/access.log
        logpulse check -l /var/log/apache2/access.log --run-time 23:30
        logpulse check -l access.log -f '%h %l %u %t "%r" %>s %b time:%D' --json
        logpulse check -l access.log --metrics-file /var/lib/node_exporter/logpulse.prom

    \b
    Environment:
        LOGPULSE_LOG, LOGPULSE_FORMAT, LOGPULSE_RUN_TIME, LOGPULSE_SEEK_FORMAT,
        LOGPULSE_STATE_FILE, LOGPULSE_STATE_DIR, LOGPULSE_METRICS_FILE,
        LOGPULSE_LAST_RUN, LOGPULSE_BLOCK_SIZE, LOGPULSE_LOG_LEVEL
    """
    configure_logging(verbose)

    try:
        config = load_config(
            log=log_path or log_arg,
            format=log_format,
            rla_run_time=run_time,
            seek_format=seek_format,
            state_file=state_file,
            metrics_file=metrics_file,
            last_run=last_run,
        )
        result = Monitor(config).run()
    except ConfigurationError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    except LogReadError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(2)
    except StateError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(3)

    if json_output:
        click.echo(json.dumps(result.model_dump(mode='json'), indent=2))
    else:
        colorize = not no_color and sys.stdout.isatty()
        click.echo(result.to_cli(colorize=colorize))
