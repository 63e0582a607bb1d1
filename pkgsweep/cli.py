#!/usr/bin/env python3

import click

from pkgsweep.commands.config import config_cmd
from pkgsweep.commands.evaluate import archive_handler, fork_handler, suppress_handler


@click.group()
@click.version_option(package_name="pkgsweep")
def cli():
    """pkgsweep - Find packages to archive or suppress from a documentation index.

    Packages nobody imports whose GitHub repository went two years without
    updates should be archived. Packages living in forks that only existed
    to send a pull request (fast forks) should be suppressed as well.
    """
    pass


cli.add_command(archive_handler, name='archive')
cli.add_command(fork_handler, name='fork')
cli.add_command(suppress_handler, name='suppress')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
