"""Main CLI entry point with command groups"""

import click

from logpulse.__version__ import __version__
from logpulse.cli.check import check_command
from logpulse.cli.seek import seek_command
from logpulse.cli.state import state_command


class DefaultCommandGroup(click.Group):
    """Custom Click Group that allows a default command"""

    def parse_args(self, ctx, args):
        # During shell completion, don't redirect to default command
        if ctx.resilient_parsing:
            return super().parse_args(ctx, args)

        # If --help or --version is requested, show group help/version
        if args and args[0] in ('--help', '-h', '--version'):
            return super().parse_args(ctx, args)

        # Check if first arg is a known command
        if args and args[0] in self.commands:
            return super().parse_args(ctx, args)

        # Otherwise, treat as check command (default)
        return super().parse_args(ctx, ['check'] + args)


@click.group(cls=DefaultCommandGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name='logpulse')
@click.pass_context
def cli(ctx):
    """
    logpulse - incremental access log monitor.

    \b
    Commands:
      logpulse [LOG]              Report request rate, run daily summary when due (default)
      logpulse state              Show or reset persisted state
      logpulse seek <log>         Find the byte offset where a time window starts

    \b
    Examples:
      logpulse /var/log/apache2/access.log
      logpulse check -l access.log --run-time 23:30 --json
      logpulse state --reset
      logpulse seek access.log --after '2024-01-15 00:00:00'
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


# Register subcommands (check is the default command)
cli.add_command(check_command, name='check')
cli.add_command(state_command, name='state')
cli.add_command(seek_command, name='seek')


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
