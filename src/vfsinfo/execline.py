import shlex
from collections.abc import Sequence
from pathlib import Path

from .errors import ValidationError
from .location import Location

DEFAULT_TERMINAL_COMMAND: tuple[str, ...] = ("xterm", "-e")


def _quote_all(values: Sequence[str]) -> str:
    return " ".join(shlex.quote(value) for value in values)


def expand_field_codes(
    exec_line: str,
    locations: Sequence[Location],
    *,
    icon: str | None = None,
    name: str | None = None,
    path: Path | None = None,
) -> str:
    """
    Substitute the field codes of a desktop `Exec` template.

    Every substituted value is shell-quoted, so the result can be split with
    shlex without values breaking apart. `%f`, `%u`, `%d` and `%n` only use
    the first location.
    """
    out: list[str] = []
    first: Location | None = locations[0] if locations else None

    index: int = 0
    while index < len(exec_line):
        char: str = exec_line[index]
        if char != "%" or index + 1 >= len(exec_line):
            out.append(char)
            index += 1
            continue

        code: str = exec_line[index + 1]
        index += 2

        if code == "%":
            out.append("%")
        elif code == "f":
            if first is not None:
                out.append(shlex.quote(str(first.path)))
        elif code == "F":
            out.append(_quote_all([str(location.path) for location in locations]))
        elif code == "u":
            if first is not None:
                out.append(shlex.quote(first.uri))
        elif code == "U":
            out.append(_quote_all([location.uri for location in locations]))
        elif code == "d":
            if first is not None:
                out.append(shlex.quote(str(first.path.parent)))
        elif code == "D":
            out.append(_quote_all([str(location.path.parent) for location in locations]))
        elif code == "n":
            if first is not None:
                out.append(shlex.quote(first.path.name))
        elif code == "N":
            out.append(_quote_all([location.path.name for location in locations]))
        elif code == "i":
            if icon:
                out.append("--icon " + shlex.quote(icon))
        elif code == "c":
            if name:
                out.append(shlex.quote(name))
        elif code == "k":
            if path is not None:
                out.append(shlex.quote(str(path)))
        # deprecated (%v, %m) and unknown field codes expand to nothing

    return "".join(out)


def parse_exec(
    exec_line: str,
    locations: Sequence[Location],
    *,
    icon: str | None = None,
    name: str | None = None,
    path: Path | None = None,
    terminal: bool = False,
    terminal_command: Sequence[str] = DEFAULT_TERMINAL_COMMAND,
) -> list[str]:
    """
    Turn an `Exec` template into an argv for `locations`.

    Raises
    ------
    ValidationError
        If the expanded command line cannot be tokenized or is empty.
    """
    command_line: str = expand_field_codes(exec_line, locations, icon=icon, name=name, path=path)

    try:
        argv: list[str] = shlex.split(command_line)
    except ValueError as err:
        raise ValidationError(f"Failed to parse command line {exec_line!r}: {err}", path=path, phase="parse") from err

    if not argv:
        raise ValidationError("Empty command line", path=path, phase="parse")

    if terminal:
        argv = list(terminal_command) + argv

    return argv
