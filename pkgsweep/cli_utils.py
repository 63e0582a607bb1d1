"""
Common CLI utilities and decorators for consistent command behavior.
"""

import logging
import sys
import click
from functools import wraps

from .exit_codes import SUCCESS, INTERRUPTED, CommandError

logger = logging.getLogger(__name__)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - CommandError subclasses exit with their own exit code
    - Ctrl+C exits with the SIGINT exit code
    - Click exceptions keep their usual handling
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("Interrupted by user", err=True)
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(e.exit_code)
        sys.exit(SUCCESS)

    return wrapper


def common_options(func):
    """Options shared by every batch evaluation command."""
    options = [
        click.option('--file', '-f', 'package_file', type=click.Path(exists=True, dir_okay=False),
                     help='File containing the list of packages (default: stdin)'),
        click.option('--id', 'client_id', default=None, help='Github client ID'),
        click.option('--secret', 'client_secret', default=None, help='Github client secret'),
        click.option('--output', '-o', default=None, help='Log file, appended (default: pkgsweep-<command>.out)'),
        click.option('--workers', '-w', type=click.IntRange(min=1), default=None,
                     help='Number of concurrent workers'),
        click.option('--progress', is_flag=True, help='Show a progress bar'),
        click.option('--json', 'as_json', is_flag=True, help='Print every result as JSONL'),
        click.option('--verbose', '-v', is_flag=True, help='Debug logging'),
    ]
    for option in reversed(options):
        func = option(func)
    return func
