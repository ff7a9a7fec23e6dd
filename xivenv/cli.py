#!/usr/bin/env python3
"""
xivenv - reproduce the environment of a running FFXIV (Wine/Proton) instance

Finds the ffxivboot.exe process, copies its Wine/Steam environment and either
prints a shell script (stdout redirected) or launches a command in it.
"""

import sys
import argparse
import logging
from typing import List, Optional

from xivenv.config import LauncherConfig, from_args
from xivenv.environment import read_environment, repair_search_path, is_steam_launch
from xivenv.errors import NotFoundError, ReadError, SpawnError
from xivenv.log_utils import configure_logging
from xivenv.output_driver import OutputDriver, stdout_is_piped
from xivenv.process_locator import ProcessLocator

EXIT_FAILURE = 1
EXIT_SPAWN_FAILURE = 127

EPILOG = """\
  [exec [args...]]
        Provide a custom application to run.

Redirect the command output to create a shell script instead of dropping a
shell or launching the specified command.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='xivenv',
        description='Run a command inside the environment of a running FFXIV instance',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Toggle verbose output')
    parser.add_argument('-d', '--debug', action='store_true',
                        help='Enable even more verbose debug output (implies -v)')
    parser.add_argument('-p', '--pid', type=int, default=-1,
                        help='Select the process ID of FFXIV instead of auto detection')
    parser.add_argument('--keep-path', action='store_true',
                        help='Keep every PATH entry of the game process instead of only Steam ones')
    parser.add_argument('command', nargs=argparse.REMAINDER, help='Command to run')
    return parser


def run(config: LauncherConfig, driver: Optional[OutputDriver] = None,
        logger: Optional[logging.Logger] = None) -> int:
    """Locate -> extract -> emit. Returns the process exit status."""
    logger = logger or logging.getLogger('xivenv')
    driver = driver or OutputDriver(logger=logger)

    logger.debug("finding ffxiv pid")
    locator = ProcessLocator(proc_root=config.proc_root, target=config.target, logger=logger)
    try:
        pid = locator.locate(config.override_pid)
    except NotFoundError as e:
        logger.error(f"failed to find ffxiv! {e}")
        return EXIT_FAILURE
    logger.info(f"selected pid {pid}")

    logger.debug("build environment")
    try:
        env = read_environment(pid, proc_root=config.proc_root, log=logger)
    except ReadError as e:
        logger.error(f"failed to fetch environ! {e}")
        return EXIT_FAILURE

    if is_steam_launch(env):
        logger.info("game was started through Steam")
    env = repair_search_path(env, filter_segments=config.filter_path)

    logger.debug("check for pipe")
    try:
        return driver.run(env, config.command, is_piped=stdout_is_piped(driver.stream))
    except SpawnError as e:
        logger.error(str(e))
        return EXIT_SPAWN_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = from_args(args)
    logger = configure_logging(config.verbose, config.debug)
    return run(config, logger=logger)


if __name__ == '__main__':
    sys.exit(main())
