"""CLI command for inspecting and resetting the scan state."""

import json
import sys

import click

from logcheck.state import CorruptStateError, delete_state, load_state
from logcheck.utils import configure_logging, get_default_state_path


@click.command('state')
@click.option('--statefile', '-s', 'state_file', default=None, help='State file (default: <state dir>/state.json)')
@click.option('--info', '-i', is_flag=True, help='Show the stored state (default)')
@click.option('--reset', '-r', is_flag=True, help='Delete the state file so the next check starts over')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--verbose', '-v', count=True, help='Log to stderr (-v info, -vv debug)')
def state_command(state_file: str | None, info: bool, reset: bool, json_output: bool, verbose: int):
    """Show or reset the stored scan state.

    \b
    Examples:
        logcheck state                      # Show positions of all tracked files
        logcheck state --json               # Same, as JSON
        logcheck state --reset              # Forget all positions
        logcheck state -s /tmp/state.json   # Use another state file
    """
    configure_logging(verbose)
    path = state_file or str(get_default_state_path())

    if info and reset:
        click.echo('Error: Cannot use both --info and --reset. Choose one.', err=True)
        sys.exit(1)

    if reset:
        deleted = delete_state(path)
        if json_output:
            click.echo(json.dumps({'path': path, 'action': 'reset', 'success': deleted}, indent=2))
        else:
            click.echo(f'{path}: state {"deleted" if deleted else "not found"}')
        return

    try:
        state = load_state(path)
    except CorruptStateError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)

    if json_output:
        click.echo(json.dumps({'path': path, 'state': state.model_dump(mode='json')}, indent=2))
        return

    click.echo(f'State file: {path}')
    click.echo(f'Updated: {state.updated_at.isoformat(timespec="seconds") if state.updated_at else "never"}')
    if not state.files:
        click.echo('No files tracked.')
        return

    for file_path, file_state in sorted(state.files.items()):
        click.echo(f'\n{file_path}:')
        click.echo(f'  Offset: {file_state.offset:,} bytes')
        click.echo(f'  Lines: {file_state.line_number:,}')
        if file_state.identity is not None:
            identity = file_state.identity
            if identity.is_inode_based:
                click.echo(f'  Identity: device {identity.device}, inode {identity.inode}')
            elif identity.created is not None:
                click.echo(f'  Identity: created {identity.created}')
            elif identity.fingerprint is not None:
                click.echo(f'  Identity: first line {identity.fingerprint[:16]}')
        if file_state.pending is not None:
            click.echo(
                f'  Pending message: {file_state.pending.line_count} lines from line {file_state.pending.start_line}'
            )
        if file_state.last_critical_at:
            click.echo(f'  Last critical: {file_state.last_critical_at.isoformat(timespec="seconds")}')
        if file_state.last_warning_at:
            click.echo(f'  Last warning: {file_state.last_warning_at.isoformat(timespec="seconds")}')
        if file_state.kept_messages:
            click.echo(f'  Kept messages: {len(file_state.kept_messages)}')
        if file_state.updated_at:
            click.echo(f'  Checked: {file_state.updated_at.isoformat(timespec="seconds")}')
