"""
Batch evaluation commands for pkgsweep.

`archive`, `fork` and `suppress` read a package list, evaluate it against
the GitHub API and print the paths that match on stdout. A BEGIN/END framed
log of every decision and error is appended to the --output file
(`pkgsweep-<command>.out` by default).
"""

import json
import logging
import sys
from typing import Iterator, Optional

import click

from ..config import load_config, configure_logging
from ..cli_utils import standard_command, common_options
from ..domain.package import EvaluationResult
from ..exit_codes import NoPackagesFoundError, PartialSuccessError, CommandError, DATA_ERROR
from ..infra.github_client import GitHubAuth, response_from_cache
from ..infra.package_store import read_packages
from ..services.batch_service import BatchEvaluator

logger = logging.getLogger(__name__)

WORKFLOWS = {
    'archive': ('should_archive_packages', 'should be archived'),
    'fork': ('are_fast_fork_packages', 'is a fast fork'),
    'suppress': ('should_suppress_packages', 'should be suppressed'),
}


def default_log_file(workflow: str) -> str:
    return f"pkgsweep-{workflow}.out"


def _resolve_auth(client_id: Optional[str], client_secret: Optional[str], config: dict) -> Optional[GitHubAuth]:
    """
    Resolve GitHub credentials.

    Priority: command line flags > config file. Both the id and the secret
    are required to enable authentication.
    """
    if client_id is not None or client_secret is not None:
        if not client_id or not client_secret:
            raise click.UsageError("to enable Github authentication, you need to inform the id and secret")
        return GitHubAuth(client_id, client_secret)

    github = config.get('github', {})
    if github.get('client_id') and github.get('client_secret'):
        return GitHubAuth(github['client_id'], github['client_secret'])
    return None


def _load_packages(package_file: Optional[str]):
    try:
        if package_file:
            return read_packages(package_file)
        return read_packages(sys.stdin)
    except ValueError as e:
        raise CommandError(f"invalid package list: {e}", DATA_ERROR) from e
    except OSError as e:
        raise CommandError(f"error reading package list: {e}") from e


def _track(results: Iterator[EvaluationResult], total: int, progress: bool) -> Iterator[EvaluationResult]:
    """Wrap a result stream with a rich progress bar on stderr."""
    if not progress:
        yield from results
        return

    from rich.console import Console
    from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=Console(stderr=True),
    ) as bar:
        task = bar.add_task("Analyzing packages...", total=total)
        for result in results:
            yield result
            bar.update(task, advance=1)


def run_workflow(
    workflow: str,
    package_file: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str],
    output: Optional[str],
    workers: Optional[int],
    progress: bool,
    as_json: bool,
    verbose: bool,
) -> None:
    """Run one batch workflow end to end."""
    method, label = WORKFLOWS[workflow]
    output = output or default_log_file(workflow)

    config = load_config()
    if workers is not None:
        config.setdefault('batch', {})['workers'] = workers

    auth = _resolve_auth(client_id, client_secret, config)
    packages = _load_packages(package_file)
    if not packages:
        raise NoPackagesFoundError()

    file_handler = configure_logging(config, verbose=verbose, log_file=output)
    try:
        logger.info("BEGIN")
        logger.info(f"{len(packages)} packages will be analyzed")

        evaluator = BatchEvaluator.from_config(config, auth=auth, is_cached=response_from_cache)
        results = getattr(evaluator, method)(packages)

        matched = failed = 0
        for result in _track(results, len(packages), progress):
            if result.error is not None:
                failed += 1
                logger.error(str(result.error))
            elif result.decision:
                matched += 1
                logger.info(f"package “{result.path}” {label}")

            if as_json:
                click.echo(json.dumps(result.to_dict(), ensure_ascii=False))
            elif result.error is None and result.decision:
                click.echo(result.path)

        logger.info(f"{len(packages)} packages analyzed: {matched} matched, {failed} errors")
        logger.info("END")
    finally:
        if file_handler is not None:
            logging.getLogger("pkgsweep").removeHandler(file_handler)
            file_handler.close()

    if failed:
        raise PartialSuccessError(
            f"{failed} of {len(packages)} packages could not be analyzed",
            succeeded=len(packages) - failed,
            failed=failed,
        )


@click.command('archive')
@common_options
@standard_command
def archive_handler(**kwargs):
    """
    List packages that should be archived.

    A package is archived when no other package imports it and its GitHub
    repository had no update in the last two years.

    \b
    Examples:
        pkgsweep archive -f packages.txt
        pkgsweep archive --id ID --secret SECRET --progress < packages.txt
    """
    run_workflow('archive', **kwargs)


@click.command('fork')
@common_options
@standard_command
def fork_handler(**kwargs):
    """
    List packages living in fast forks.

    A fast fork is a GitHub fork whose commits all happened in the first
    week after it was created, at most two of them.

    \b
    Examples:
        pkgsweep fork -f packages.txt -o gddofork.out
    """
    run_workflow('fork', **kwargs)


@click.command('suppress')
@common_options
@standard_command
def suppress_handler(**kwargs):
    """
    List packages that should be suppressed from the index.

    Combines both checks: a package is suppressed when it should be
    archived or when it lives in a fast fork.

    \b
    Examples:
        pkgsweep suppress -f packages.txt --json
    """
    run_workflow('suppress', **kwargs)
