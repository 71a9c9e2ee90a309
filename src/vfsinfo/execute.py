import logging
import shlex
from collections.abc import Sequence
from pathlib import Path

from . import mime
from .errors import ValidationError
from .execline import DEFAULT_TERMINAL_COMMAND, parse_exec
from .info import FileInfo
from .keyfile import DesktopEntry
from .launch import Spawner
from .location import Location

_log = logging.getLogger(__name__)

_log_debug = _log.debug


def working_directory_for(info: FileInfo, locations: Sequence[Location]) -> Path:
    if locations:
        return locations[0].path.parent
    return info.path.parent


def command_for_info(
    info: FileInfo,
    locations: Sequence[Location],
    *,
    terminal_command: Sequence[str] = DEFAULT_TERMINAL_COMMAND,
    locales: Sequence[str] | None = None,
) -> list[str]:
    """
    Build the argv that runs `info` with `locations` as arguments.

    Launcher files provide the command through their Exec key; any other
    file is run directly with the target paths appended.

    Raises
    ------
    ValidationError
        If the launcher file cannot be parsed, has no Exec key, or the
        resulting command line cannot be tokenized.
    """
    path: Path = info.path

    if info.mime_info.name != mime.APPLICATION_DESKTOP:
        exec_line: str = shlex.quote(str(path)).replace("%", "%%") + " %F"
        return parse_exec(exec_line, locations)

    entry: DesktopEntry | None = DesktopEntry.open(path, locales)
    if entry is None:
        raise ValidationError("Unable to parse file", path=path, phase="parse")

    desktop_exec: str | None = entry.read_entry_untranslated("Exec")
    if desktop_exec is None:
        raise ValidationError("No Exec field specified", path=path, phase="parse")

    return parse_exec(
        desktop_exec,
        locations,
        icon=entry.read_entry_untranslated("Icon"),
        name=entry.read_entry("Name"),
        path=path,
        terminal=entry.read_bool_entry("Terminal", False),
        terminal_command=terminal_command,
    )


def execute_info(
    info: FileInfo,
    locations: Sequence[Location],
    display: str | None,
    *,
    spawner: Spawner,
    terminal_command: Sequence[str] = DEFAULT_TERMINAL_COMMAND,
    locales: Sequence[str] | None = None,
) -> None:
    """
    Execute the file described by `info`, passing `locations` as parameters.

    The process starts in the directory of the first location, or in the
    directory of `info` itself when no locations are given. Errors from the
    spawner propagate unchanged.
    """
    assert info.is_alive

    argv: list[str] = command_for_info(info, locations, terminal_command=terminal_command, locales=locales)
    working_directory: Path = working_directory_for(info, locations)

    _log_debug("Executing %s: %r in %s", info.path, argv, working_directory)

    spawner.spawn(working_directory, argv, display)
