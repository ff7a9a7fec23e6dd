"""
Logging setup for the xivenv CLI.
Everything goes to stderr: stdout carries the generated shell script.
"""

import logging
import sys

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
DEBUG_FORMAT = '%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'


def resolve_level(verbose: bool = False, debug: bool = False) -> int:
    """Map the -v/-d flags onto a logging level (debug implies verbose)."""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def configure_logging(verbose: bool = False, debug: bool = False, stream=None) -> logging.Logger:
    level = resolve_level(verbose, debug)
    logging.basicConfig(
        level=level,
        format=DEBUG_FORMAT if debug else DEFAULT_FORMAT,
        stream=stream or sys.stderr,
        force=True,
    )
    return logging.getLogger('xivenv')
