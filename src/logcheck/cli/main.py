"""Main CLI entry point with command groups"""

import sys

import click

from logcheck.__version__ import __version__
from logcheck.cli.check import check_command
from logcheck.cli.state import state_command
from logcheck.models import RESULT_NAME, Severity


class DefaultCommandGroup(click.Group):
    """Custom Click Group that allows a default command"""

    def parse_args(self, ctx, args):
        # During shell completion, don't redirect to default command
        if ctx.resilient_parsing:
            return super().parse_args(ctx, args)

        # If --help or --version is requested, show group help/version
        if args and args[0] in ('--help', '-h', '--version'):
            return super().parse_args(ctx, args)

        if args and args[0] in self.commands:
            return super().parse_args(ctx, args)

        # Otherwise, treat as check command (default)
        return super().parse_args(ctx, ['check'] + args)


@click.group(
    cls=DefaultCommandGroup,
    invoke_without_command=True,
    context_settings={'help_option_names': ['-h', '--help']},
)
@click.version_option(version=__version__, prog_name='logcheck')
@click.pass_context
def cli(ctx):
    """
    logcheck - Incremental log file check for Nagios/Icinga.

    \b
    Commands:
      logcheck -f <file> [options]   Check log files (default command)
      logcheck state                 Show or reset the stored scan state

    \b
    Examples:
      logcheck -f /var/log/app.log -c 'FATAL' -w 'WARN'
      logcheck -f '/var/log/app.log:app\\.log\\.[0-9]+' -l '^\\d{4}-' -c 'ERROR' -k 1h
      logcheck state --info
      logcheck state --reset

    \b
    Exit codes:
      0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


cli.add_command(check_command, name='check')
cli.add_command(state_command, name='state')


def main(argv: list[str] | None = None):
    """Entry point for the CLI.

    Usage errors exit with the UNKNOWN code (3) instead of click's default 2,
    which a monitoring supervisor would read as CRITICAL.
    """
    try:
        rv = cli.main(args=argv, prog_name='logcheck', standalone_mode=False)
    except click.exceptions.Abort:
        click.echo(f'{RESULT_NAME} {Severity.UNKNOWN.value}: aborted')
        sys.exit(Severity.UNKNOWN.exit_code)
    except click.ClickException as e:
        click.echo(f'{RESULT_NAME} {Severity.UNKNOWN.value}: {e.format_message()}')
        sys.exit(Severity.UNKNOWN.exit_code)
    sys.exit(rv if isinstance(rv, int) else 0)


if __name__ == '__main__':
    main()
