#!/usr/bin/env python3
"""
Environment Extractor - rebuild a launch environment from a running process

Reads /proc/[pid]/environ, keeps only the whitelisted Wine/Steam/Proton
variables, fills in the defaults the output modes rely on and repairs PATH.
"""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional

from xivenv.errors import ReadError
from xivenv.process_locator import PROC_ROOT

logger = logging.getLogger(__name__)

# Only these names are ever copied out of the target's environment
WHITELIST = frozenset({
    'DRI_PRIME',
    'LD_LIBRARY_PATH',
    'PYTHONPATH',
    'TERM',
    'PATH',
    'WINE',
    'SHELL',

    'SteamUser',
    'SteamGameId',
    'SteamAppId',
    'SteamClientLaunch',
    'SteamAppUser',

    'EnableConfiguratorSupport',
    'ENABLE_VK_LAYER_VALVE_steam_overlay_1',
    'DXVK',
    'DXVK_LOG_LEVEL',

    'STEAM_ZENITY',
    'STEAM_RUNTIME',
    'STEAM_RUNTIME_LIBRARY_PATH',
    'STEAM_CLIENT_CONFIG_FILE',
    'STEAM_COMPAT_CLIENT_INSTALL_PATH',
    'STEAM_COMPAT_DATA_PATH',
    'STEAMSCRIPT_VERSION',

    'SDL_VIDEO_X11_DGAMOUSE',
    'SDL_GAMECONTROLLERCONFIG',
    'SDL_GAMECONTROLLER_IGNORE_DEVICES',
    'SDL_GAMECONTROLLER_ALLOW_STEAM_VIRTUAL_GAMEPAD',
    'SDL_VIDEO_FULLSCREEN_DISPLAY',

    'SteamStreamingHardwareEncodingNVIDIA',
    'SteamStreamingHardwareEncodingIntel',
    'SteamStreamingHardwareEncodingAMD',

    'WINEDEBUG',
    'WINEDLLPATH',
    'WINEPREFIX',
    'WINE_MONO_OVERRIDES',
    'WINEESYNC',
    'WINEDLLOVERRIDES',
    'WINELOADERNOEXEC',
    'WINEPRELOADRESERVE',
    'PROTON_VR_RUNTIME',
})

# Bare name (no '=') that is still meaningful as a marker
BARE_MARKER = 'WINE'

DEFAULTS = {
    'TERM': 'xterm',
    'SHELL': '/bin/bash',
}

PATH_MARKER = 'steam'
PATH_SEPARATOR = os.pathsep


def parse_environ_block(data: bytes, log: Optional[logging.Logger] = None) -> Dict[str, str]:
    """Parse a null-delimited KEY=VALUE block, keeping whitelisted names only"""
    log = log or logger
    env: Dict[str, str] = {}

    for record in os.fsdecode(data).split('\x00'):
        name, sep, value = record.partition('=')
        if not sep:
            if name == BARE_MARKER:
                env[name] = ''
            elif name:
                log.debug(f"dropping malformed environ record: {name!r}")
            continue

        if name in WHITELIST:
            env[name] = value

    return env


def apply_defaults(env: Dict[str, str]) -> Dict[str, str]:
    """Set TERM and SHELL when the target process did not provide them"""
    for key, value in DEFAULTS.items():
        env.setdefault(key, value)
    return env


def read_environment(pid: int, proc_root: Path = PROC_ROOT,
                     log: Optional[logging.Logger] = None) -> Dict[str, str]:
    """
    Read and filter the environment of a running process.
    Raises ReadError if /proc/[pid]/environ cannot be read.
    """
    log = log or logger
    path = Path(proc_root) / str(pid) / 'environ'
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise ReadError(pid, str(path), e.strerror or str(e)) from e

    env = apply_defaults(parse_environ_block(data, log))
    log.debug(f"extracted {len(env)} variables from pid {pid}")
    return env


def _filter_segments(segments: List[str]) -> List[str]:
    return [s for s in segments if PATH_MARKER in s.lower()]


def repair_search_path(env: Dict[str, str], host_path: Optional[str] = None,
                       filter_segments: bool = True) -> Dict[str, str]:
    """
    Return a copy of env with PATH rebuilt.

    With filter_segments, only segments mentioning steam survive. Without it
    every segment is kept, which is what the original launcher did in
    practice. The Wine binary directory and host_path (this process's own
    PATH by default) are appended, and empty or '.' segments are dropped.
    """
    if host_path is None:
        host_path = os.environ.get('PATH', '')

    segments = env.get('PATH', '').split(PATH_SEPARATOR)
    if filter_segments:
        segments = _filter_segments(segments)

    segments.append(os.path.dirname(env.get('WINE', '')))
    segments.extend(host_path.split(PATH_SEPARATOR))

    repaired = dict(env)
    repaired['PATH'] = PATH_SEPARATOR.join(s for s in segments if s and s != '.')
    return repaired


def is_steam_launch(env: Dict[str, str]) -> bool:
    """True when the target was started by the Steam client"""
    return 'SteamUser' in env
