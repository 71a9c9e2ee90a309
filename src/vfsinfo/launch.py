import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .errors import SpawnError

_log = logging.getLogger(__name__)

_log_debug = _log.debug


class Spawner(Protocol):
    def spawn(self, working_directory: Path, argv: Sequence[str], display: str | None) -> None: ...


class ProcessSpawner:
    """
    Start detached child processes with `subprocess.Popen`.

    `display` is an X11/Wayland display name; when given it replaces DISPLAY
    in the child's environment. The program is looked up in PATH.
    """

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env: dict[str, str] | None = env

    def spawn(self, working_directory: Path, argv: Sequence[str], display: str | None) -> None:
        env: dict[str, str] = dict(os.environ if self.env is None else self.env)
        if display is not None:
            env["DISPLAY"] = display

        _log_debug("Spawning %r in %s", list(argv), working_directory)

        try:
            _ = subprocess.Popen(
                list(argv),
                cwd=str(working_directory),
                env=env,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as err:
            strerror: str = err.strerror or str(err)
            raise SpawnError(
                f"Failed to execute {argv[0]!r}: {strerror}",
                path=working_directory,
                phase="spawn",
                errno=err.errno,
                strerror=strerror,
            ) from err
