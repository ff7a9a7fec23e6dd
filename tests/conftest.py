import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))


def _write_process(root: Path, pid: int, cmdline=None, environ=None) -> Path:
    proc_dir = root / str(pid)
    proc_dir.mkdir(parents=True, exist_ok=True)
    if cmdline is not None:
        (proc_dir / 'cmdline').write_bytes('\x00'.join(cmdline).encode() + b'\x00')
    if environ is not None:
        (proc_dir / 'environ').write_bytes('\x00'.join(environ).encode() + b'\x00')
    return proc_dir


@pytest.fixture
def proc_root(tmp_path):
    """An empty fake /proc tree."""
    root = tmp_path / 'proc'
    root.mkdir()
    return root


@pytest.fixture
def add_process(proc_root):
    """Write cmdline/environ records for a fake process."""
    def _add(pid, cmdline=None, environ=None):
        return _write_process(proc_root, pid, cmdline, environ)
    return _add
