import io
import subprocess

import pytest

from xivenv import output_driver
from xivenv.cli import EXIT_SPAWN_FAILURE, build_parser, main, run
from xivenv.config import LauncherConfig, from_args
from xivenv.output_driver import OutputDriver

BOOT_CMDLINE = ['wine64', 'C:\\SquareEnix\\boot\\ffxivboot.exe']
GAME_ENV = [
    'WINEPREFIX=/games/ffxiv',
    'WINE=/proton/dist/bin/wine',
    'PATH=/home/p/.steam/bin:/usr/bin',
    'SteamUser=player',
    'HOME=/home/player',
]


@pytest.fixture
def host_path(monkeypatch):
    monkeypatch.setenv('PATH', '/host/bin')


def test_parser_defaults():
    args = build_parser().parse_args([])
    config = from_args(args)
    assert config.pid == -1
    assert config.override_pid is None
    assert config.command == []
    assert config.filter_path


def test_parser_trailing_command():
    args = build_parser().parse_args(['-d', '-p', '12', 'winecfg', '-v', 'x y'])
    config = from_args(args)
    assert config.command == ['winecfg', '-v', 'x y']
    assert config.override_pid == 12
    assert config.verbose and config.debug


def test_proc_root_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('XIVENV_PROC_ROOT', str(tmp_path))
    assert from_args(build_parser().parse_args([])).proc_root == tmp_path


def test_run_writes_script(add_process, proc_root, host_path):
    add_process(42, BOOT_CMDLINE, GAME_ENV)
    stream = io.StringIO()

    status = run(LauncherConfig(proc_root=proc_root, command=['run', 'x y']),
                 driver=OutputDriver(stream=stream))

    assert status == 0
    lines = stream.getvalue().splitlines()
    assert lines[0] == '#!/bin/sh'
    assert 'export HOME="/home/player"' not in lines
    assert 'export PATH="/home/p/.steam/bin:/proton/dist/bin:/host/bin"' in lines
    assert 'export TERM="xterm"' in lines
    assert lines[-2:] == ['cd $WINEPREFIX/drive_c', 'run "x y"']


def test_run_keep_path(add_process, proc_root, host_path):
    add_process(42, BOOT_CMDLINE, GAME_ENV)
    stream = io.StringIO()
    run(LauncherConfig(proc_root=proc_root, filter_path=False), driver=OutputDriver(stream=stream))
    assert 'export PATH="/home/p/.steam/bin:/usr/bin:/proton/dist/bin:/host/bin"' in stream.getvalue()


def test_run_with_override_pid(add_process, proc_root):
    add_process(77, ['bash'], ['WINEPREFIX=/pfx'])
    stream = io.StringIO()
    assert run(LauncherConfig(proc_root=proc_root, pid=77), driver=OutputDriver(stream=stream)) == 0
    assert 'export WINEPREFIX="/pfx"' in stream.getvalue()


def test_run_unreadable_environ(add_process, proc_root):
    add_process(42, BOOT_CMDLINE)
    stream = io.StringIO()
    assert run(LauncherConfig(proc_root=proc_root), driver=OutputDriver(stream=stream)) == 1
    assert stream.getvalue() == ''


def test_main_not_found_produces_no_output(proc_root, monkeypatch, capsys):
    monkeypatch.setenv('XIVENV_PROC_ROOT', str(proc_root))
    assert main([]) == 1
    captured = capsys.readouterr()
    assert captured.out == ''
    assert 'failed to find ffxiv' in captured.err


def test_log_levels():
    import logging
    from xivenv.log_utils import resolve_level

    assert resolve_level() == logging.WARNING
    assert resolve_level(verbose=True) == logging.INFO
    assert resolve_level(verbose=False, debug=True) == logging.DEBUG


class TtyStream(io.StringIO):
    def isatty(self):
        return True


def test_run_missing_proc_root(tmp_path):
    stream = io.StringIO()
    status = run(LauncherConfig(proc_root=tmp_path / 'nope'), driver=OutputDriver(stream=stream))
    assert status == 1
    assert stream.getvalue() == ''


def test_run_exec_mode_returns_child_status(add_process, proc_root, host_path, monkeypatch):
    add_process(42, BOOT_CMDLINE, GAME_ENV)
    launched = []

    def fake_run(argv, env=None, check=False, preexec_fn=None):
        launched.append((argv, env))
        return subprocess.CompletedProcess(argv, 9)

    monkeypatch.setattr(output_driver.subprocess, 'run', fake_run)
    status = run(LauncherConfig(proc_root=proc_root, command=['winecfg']),
                 driver=OutputDriver(stream=TtyStream()))

    assert status == 9
    argv, env = launched[0]
    assert argv == ['winecfg']
    assert 'HOME' not in env
    assert env['WINEPREFIX'] == '/games/ffxiv'


def test_run_exec_mode_missing_binary(add_process, proc_root, tmp_path):
    add_process(42, BOOT_CMDLINE, GAME_ENV)
    config = LauncherConfig(proc_root=proc_root, command=[str(tmp_path / 'no-such-binary')])
    assert run(config, driver=OutputDriver(stream=TtyStream())) == EXIT_SPAWN_FAILURE == 127
