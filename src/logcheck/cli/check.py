"""CLI command for checking log files."""

import json
import logging
import sys

import click

from logcheck.config import DEFAULT_MAX_OUTPUT_MESSAGES, ConfigError, build_config
from logcheck.metrics import write_metrics
from logcheck.models import RESULT_NAME, Severity
from logcheck.scanner import LogScanner
from logcheck.utils import configure_logging


logger = logging.getLogger(__name__)


def unknown_exit(message: str):
    """Print an UNKNOWN plugin result and exit with its code."""
    click.echo(f'{RESULT_NAME} {Severity.UNKNOWN.value}: {message}')
    sys.exit(Severity.UNKNOWN.exit_code)


@click.command('check')
@click.option(
    '--file',
    '-f',
    'files',
    multiple=True,
    required=True,
    metavar='PATH[:ROTATION]',
    help='Log file to check, optionally followed by ":" and a regex matching rotated file names (repeatable)',
)
@click.option('--line', '-l', 'line_pattern', default=None, help='Regex matching the first line of a message')
@click.option('--warningpattern', '-w', 'warning_patterns', multiple=True, help='Warning regex (repeatable)')
@click.option('--criticalpattern', '-c', 'critical_patterns', multiple=True, help='Critical regex (repeatable)')
@click.option('--statefile', '-s', 'state_file', default=None, help='State file (default: <state dir>/state.json)')
@click.option(
    '--keepstatus',
    '-k',
    'keep_status',
    default=None,
    help='Keep WARNING/CRITICAL for this long after a match, e.g. 30m, 2h, 1d',
)
@click.option('--encoding', default='utf-8', show_default=True, help='Log file encoding')
@click.option('--case-insensitive', '-i', is_flag=True, help='Match all patterns case-insensitively')
@click.option(
    '--max-messages',
    type=int,
    default=DEFAULT_MAX_OUTPUT_MESSAGES,
    show_default=True,
    help='Maximum matching messages listed per file',
)
@click.option('--json', 'json_output', is_flag=True, help='Output the result in JSON format')
@click.option('--metrics-file', default=None, help='Also write Prometheus metrics to this textfile')
@click.option('--verbose', '-v', count=True, help='Log to stderr (-v info, -vv debug)')
def check_command(
    files: tuple[str, ...],
    line_pattern: str | None,
    warning_patterns: tuple[str, ...],
    critical_patterns: tuple[str, ...],
    state_file: str | None,
    keep_status: str | None,
    encoding: str,
    case_insensitive: bool,
    max_messages: int,
    json_output: bool,
    metrics_file: str | None,
    verbose: int,
):
    """Check log files for new warning and critical messages.

    Only content added since the previous check is read. Messages spanning
    several lines are assembled with --line; the last message is held back
    until the next message starts.

    \b
    Examples:
        logcheck -f /var/log/app.log -c 'FATAL' -w 'WARN'
        logcheck -f /var/log/app.log -l '^\\[' -c 'Exception' -k 1h
        logcheck -f '/var/log/app.log:app\\.log\\.\\d+' -c 'ERROR'

    \b
    Exit codes:
        0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN
    """
    configure_logging(verbose)

    try:
        config = build_config(
            files=files,
            line_pattern=line_pattern,
            warning_patterns=warning_patterns,
            critical_patterns=critical_patterns,
            state_path=state_file,
            keep_status=keep_status,
            encoding=encoding,
            case_insensitive=case_insensitive,
            max_output_messages=max_messages,
        )
    except ConfigError as e:
        unknown_exit(str(e))

    try:
        result = LogScanner(config).run()
    except Exception as e:
        logger.exception('Check failed')
        unknown_exit(f'Unexpected error: {type(e).__name__}: {e}')

    if metrics_file:
        write_metrics(metrics_file, result)

    if json_output:
        output = result.model_dump(mode='json')
        output['exit_code'] = result.severity.exit_code
        output['summary'] = result.summary_line()
        click.echo(json.dumps(output, indent=2))
    else:
        click.echo(result.to_cli(max_messages=config.max_output_messages, excerpt_chars=config.excerpt_chars))

    sys.exit(result.severity.exit_code)
