#!/usr/bin/env python3
"""
Process Locator - find the FFXIV boot process via the /proc filesystem

Walks the numeric entries of /proc, reads each command line and picks the
first process running the target Windows binary under Wine/Proton.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from xivenv.errors import NotFoundError

TARGET_BINARY = 'ffxivboot.exe'
EXE_MARKER = '.exe'
PROC_ROOT = Path('/proc')


@dataclass
class ProcessCandidate:
    """A process read once during a scan"""
    pid: int
    cmdline: List[str] = field(default_factory=list)

    @property
    def binary(self) -> str:
        """Second command line token: the Windows binary (token 0 is the loader)"""
        return self.cmdline[1] if len(self.cmdline) > 1 else ''

    @property
    def is_windows_binary(self) -> bool:
        return EXE_MARKER in self.binary


def split_cmdline(raw: bytes) -> List[str]:
    """Split a raw /proc/[pid]/cmdline record on null bytes"""
    return os.fsdecode(raw).split('\x00')


class ProcessLocator:
    """
    Locates the target process by command line signature.
    Scan order is whatever the filesystem yields; selection is first match.
    """

    def __init__(self, proc_root: Path = PROC_ROOT, target: str = TARGET_BINARY,
                 logger: Optional[logging.Logger] = None):
        self.proc_root = Path(proc_root)
        self.target = target
        self.logger = logger or logging.getLogger(__name__)
        self.scan_count = 0

    def _list_pids(self) -> List[int]:
        """Numeric entries of the proc root"""
        return [int(name) for name in os.listdir(self.proc_root) if name.isdecimal()]

    def _parse_proc_cmdline(self, pid: int) -> List[str]:
        """Parse /proc/[pid]/cmdline; OSError propagates to the scan loop"""
        with open(self.proc_root / str(pid) / 'cmdline', 'rb') as f:
            return split_cmdline(f.read())

    def scan(self) -> Iterator[ProcessCandidate]:
        """Yield every readable process; unreadable ones are logged and skipped"""
        self.scan_count += 1
        try:
            pids = self._list_pids()
        except OSError as e:
            self.logger.error(f"cannot list processes in {self.proc_root}: {e}")
            raise NotFoundError(f"process table {self.proc_root} is unreadable") from e
        self.logger.debug(f"found process list: {len(pids)} entries")

        for pid in pids:
            try:
                cmdline = self._parse_proc_cmdline(pid)
            except OSError as e:
                # Exited mid-scan or owned by another user
                self.logger.warning(f"failed to read cmdline for pid {pid}: {e}")
                continue
            yield ProcessCandidate(pid=pid, cmdline=cmdline)

    def matches(self, candidate: ProcessCandidate) -> bool:
        if not candidate.is_windows_binary:
            return False
        return self.target in candidate.binary

    def locate(self, override_pid: Optional[int] = None) -> int:
        """
        Return the PID of the target process.

        A non-negative override is trusted as-is and no scan happens.
        Raises NotFoundError when nothing matches.
        """
        if override_pid is not None and override_pid >= 0:
            self.logger.info(f"using provided PID {override_pid}")
            return override_pid

        for candidate in self.scan():
            if self.matches(candidate):
                self.logger.debug(f"matched pid {candidate.pid}: {candidate.binary}")
                return candidate.pid

        raise NotFoundError(f"no running process matches {self.target}")
