"""
Run configuration for xivenv.
Built once from the parsed command line and handed to each component explicitly.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from xivenv.process_locator import PROC_ROOT, TARGET_BINARY

PROC_ROOT_ENV = 'XIVENV_PROC_ROOT'


@dataclass
class LauncherConfig:
    pid: int = -1
    verbose: bool = False
    debug: bool = False
    command: List[str] = field(default_factory=list)
    proc_root: Path = PROC_ROOT
    filter_path: bool = True
    target: str = TARGET_BINARY

    @property
    def override_pid(self):
        """The -p value, or None when auto detection should run"""
        return self.pid if self.pid >= 0 else None


def from_args(args) -> LauncherConfig:
    """Build a config from an argparse namespace; /proc may be redirected via XIVENV_PROC_ROOT"""
    command = list(args.command or [])
    # argparse keeps an explicit "--" separator in REMAINDER
    if command and command[0] == '--':
        command = command[1:]

    return LauncherConfig(
        pid=args.pid,
        verbose=args.verbose or args.debug,
        debug=args.debug,
        command=command,
        proc_root=Path(os.environ.get(PROC_ROOT_ENV, str(PROC_ROOT))),
        filter_path=not args.keep_path,
    )
