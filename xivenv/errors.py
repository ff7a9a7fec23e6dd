"""
Error taxonomy for xivenv.
Every fatal condition raised by the locator, extractor or driver derives from XivEnvError.
"""


class XivEnvError(Exception):
    """Base class for all xivenv failures."""


class NotFoundError(XivEnvError):
    """No running process matched the target binary."""


class ReadError(XivEnvError):
    """Process metadata could not be read after the process was located."""

    def __init__(self, pid: int, path: str, reason: str):
        self.pid = pid
        self.path = path
        self.reason = reason
        super().__init__(f"failed to read {path} for pid {pid}: {reason}")


class SpawnError(XivEnvError):
    """The requested command could not be started."""

    def __init__(self, command, reason: str):
        self.command = list(command)
        self.reason = reason
        super().__init__(f"failed to launch {' '.join(self.command)}: {reason}")
