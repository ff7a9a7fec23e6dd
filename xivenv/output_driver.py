#!/usr/bin/env python3
"""
Output Driver - turn a reconstructed environment into a script or a running command

Redirected stdout gets a POSIX shell script; an interactive terminal gets the
command launched directly inside the environment.
"""

import os
import sys
import signal
import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from xivenv.errors import SpawnError

logger = logging.getLogger(__name__)

SHEBANG = '#!/bin/sh'
DRIVE_ROOT = 'drive_c'
CHDIR_LINE = f'cd $WINEPREFIX/{DRIVE_ROOT}'
DEFAULT_SHELL_REF = '$SHELL'
SCRIPT_WRITE_FAILURE = 1

# Terminal signals go to the whole foreground group; only the child should act on them
PARENT_IGNORED_SIGNALS = (signal.SIGINT, signal.SIGQUIT)


def stdout_is_piped(stream: Optional[TextIO] = None) -> bool:
    """True when the stream is redirected into a file or pipe"""
    stream = stream or sys.stdout
    try:
        return not stream.isatty()
    except (AttributeError, ValueError):
        # Closed or fake streams are never terminals
        return True


def shell_quote(value: str) -> str:
    """Wrap in double quotes, escaping embedded double quotes"""
    return '"{}"'.format(value.replace('"', '\\"'))


def render_command(command: Optional[List[str]]) -> str:
    if not command:
        return DEFAULT_SHELL_REF
    return ' '.join([command[0]] + [shell_quote(arg) for arg in command[1:]])


def render_script(env: Dict[str, str], command: Optional[List[str]] = None) -> str:
    """Render the environment and command as a /bin/sh script (exports sorted by name)"""
    lines = [SHEBANG, '']
    for key in sorted(env):
        lines.append(f'export {key}={shell_quote(env[key])}')
    lines.append('')
    lines.append(CHDIR_LINE)
    lines.append(render_command(command))
    return '\n'.join(lines) + '\n'


def drive_root(env: Dict[str, str]) -> Path:
    return Path(env.get('WINEPREFIX', '')) / DRIVE_ROOT


def _restore_default_signals():
    """Runs in the child before exec so it sees Ctrl-C normally"""
    for signum in PARENT_IGNORED_SIGNALS:
        signal.signal(signum, signal.SIG_DFL)


def _ignore_terminal_signals() -> Dict[int, object]:
    previous = {}
    for signum in PARENT_IGNORED_SIGNALS:
        handler = signal.signal(signum, signal.SIG_IGN)
        # None means the handler was installed outside Python and cannot be restored
        if handler is not None:
            previous[signum] = handler
    return previous


def launch(env: Dict[str, str], command: Optional[List[str]] = None,
           log: Optional[logging.Logger] = None) -> int:
    """
    Run command (or $SHELL) inside env from the prefix drive root.

    The child gets exactly env, plus our own stdin/stdout/stderr. Blocks until
    it exits, ignoring SIGINT/SIGQUIT meanwhile like os.system, and always
    restores the previous working directory and signal handlers.
    Returns the child's exit status; raises SpawnError if it cannot start.
    """
    log = log or logger
    argv = list(command) if command else [env['SHELL']]
    previous_cwd = os.getcwd()
    target_cwd = drive_root(env)
    previous_handlers = _ignore_terminal_signals()

    try:
        try:
            os.chdir(target_cwd)
        except OSError as e:
            log.warning(f"cannot enter {target_cwd}, staying in {previous_cwd}: {e}")

        log.info(f"launching {' '.join(argv)}")
        try:
            result = subprocess.run(argv, env=dict(env), check=False,
                                    preexec_fn=_restore_default_signals)
        except OSError as e:
            raise SpawnError(argv, e.strerror or str(e)) from e
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)
        os.chdir(previous_cwd)

    log.debug(f"child exited with status {result.returncode}")
    return result.returncode


class OutputDriver:
    """Selects script or exec mode and carries it out"""

    def __init__(self, stream: Optional[TextIO] = None, logger: Optional[logging.Logger] = None):
        self.stream = stream or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _write(self, text: str):
        # Values may carry undecodable bytes as surrogates; write them back as the raw bytes
        buffer = getattr(self.stream, 'buffer', None)
        if buffer is None:
            self.stream.write(text)
        else:
            self.stream.flush()
            buffer.write(os.fsencode(text))
        self.stream.flush()

    def _silence_closed_stdout(self):
        # Keep interpreter shutdown from flushing into the closed pipe again
        if self.stream is sys.stdout:
            devnull = os.open(os.devnull, os.O_WRONLY)
            os.dup2(devnull, sys.stdout.fileno())

    def write_script(self, env: Dict[str, str], command: Optional[List[str]] = None) -> int:
        self.logger.info("building shell script")
        try:
            self._write(render_script(env, command))
        except BrokenPipeError:
            self.logger.debug("script reader closed the pipe")
            self._silence_closed_stdout()
            return SCRIPT_WRITE_FAILURE
        return 0

    def run(self, env: Dict[str, str], command: Optional[List[str]] = None,
            is_piped: Optional[bool] = None) -> int:
        if is_piped is None:
            is_piped = stdout_is_piped(self.stream)

        if is_piped:
            return self.write_script(env, command)

        self.logger.info("launching in environment")
        return launch(env, command, log=self.logger)
