"""
Reader and writer for the grouped key=value format of `.desktop` files.

`KeyFile` keeps every line it read (comments, blank lines, translated keys)
in order, so serializing a loaded file after `set_string()` changes only the
line that was set. `DesktopEntry` is the read-only view used when a launcher
file is only inspected.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .errors import FileIOError, ValidationError
from .locales import get_language_names

_log = logging.getLogger(__name__)

_log_debug = _log.debug

DESKTOP_GROUP: str = "Desktop Entry"

_GROUP_RE: re.Pattern[str] = re.compile(r"^\[(?P<name>[^\[\]]+)\]\s*$")
_KEY_RE: re.Pattern[str] = re.compile(r"^(?P<key>[A-Za-z0-9_.-]+)(\[(?P<locale>[^\]]+)\])?$")

_UNESCAPES: dict[str, str] = {"s": " ", "n": "\n", "t": "\t", "r": "\r", "\\": "\\"}


def unescape_value(raw: str) -> str:
    out: list[str] = []
    chars = iter(raw)
    for char in chars:
        if char != "\\":
            out.append(char)
            continue
        following: str | None = next(chars, None)
        if following is None:
            out.append("\\")
        elif following in _UNESCAPES:
            out.append(_UNESCAPES[following])
        else:
            # Unknown escapes are kept verbatim (Exec lines use "\\$" etc.)
            out.append("\\" + following)
    return "".join(out)


def escape_value(value: str) -> str:
    out: list[str] = []
    for index, char in enumerate(value):
        if char == "\\":
            out.append("\\\\")
        elif char == "\n":
            out.append("\\n")
        elif char == "\t":
            out.append("\\t")
        elif char == "\r":
            out.append("\\r")
        elif char == " " and index == 0:
            out.append("\\s")
        else:
            out.append(char)
    return "".join(out)


def parse_boolean(raw: str) -> bool | None:
    lowered: str = raw.strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    return None


def _split_lines(text: str) -> list[tuple[str, str]]:
    """
    Split `text` into (line, line ending) pairs.

    Only "\\n" ends a line; a "\\r" before it is kept as part of the ending.
    The last line has an empty ending when the text does not end in a newline.
    """
    pieces: list[str] = text.split("\n")
    last_line: str = pieces.pop()

    lines: list[tuple[str, str]] = []
    for raw in pieces:
        if raw.endswith("\r"):
            lines.append((raw[:-1], "\r\n"))
        else:
            lines.append((raw, "\n"))

    if last_line:
        lines.append((last_line, ""))

    return lines


@dataclass(slots=True)
class _Line:
    text: str
    key: str | None = None
    value: str | None = None
    eol: str = "\n"


@dataclass(slots=True)
class _Group:
    name: str
    header: _Line
    lines: list[_Line] = field(default_factory=list)

    def find(self, key: str) -> _Line | None:
        # Later duplicates win, as with GKeyFile.
        for line in reversed(self.lines):
            if line.key == key:
                return line
        return None


class KeyFile:
    def __init__(self) -> None:
        self._preamble: list[_Line] = []
        self._groups: list[_Group] = []
        self._newline: str = "\n"

    @staticmethod
    def parse(text: str) -> "KeyFile":
        key_file: KeyFile = KeyFile()
        current: _Group | None = None

        for number, (raw_line, eol) in enumerate(_split_lines(text), start=1):
            if number == 1 and eol:
                key_file._newline = eol

            stripped: str = raw_line.strip()

            if not stripped or stripped.startswith("#"):
                target: list[_Line] = key_file._preamble if current is None else current.lines
                target.append(_Line(text=raw_line, eol=eol))
                continue

            group_match: re.Match[str] | None = _GROUP_RE.match(stripped)
            if group_match is not None:
                name: str = group_match.group("name")
                existing: _Group | None = key_file._find_group(name)
                if existing is not None:
                    current = existing
                else:
                    current = _Group(name=name, header=_Line(text=raw_line, eol=eol))
                    key_file._groups.append(current)
                continue

            if "=" not in stripped:
                raise ValidationError(f"Invalid line {number}: expected key=value", phase="parse")

            if current is None:
                raise ValidationError(f"Key outside of any group on line {number}", phase="parse")

            key, _, value = raw_line.partition("=")
            key = key.strip()
            if _KEY_RE.match(key) is None:
                raise ValidationError(f"Invalid key name {key!r} on line {number}", phase="parse")

            current.lines.append(_Line(text=raw_line, key=key, value=value.lstrip(), eol=eol))

        return key_file

    @staticmethod
    def load(path: Path) -> "KeyFile":
        """
        Load and parse the key file at `path`, keeping comments and translations.

        Raises
        ------
        FileIOError
            If the file cannot be read.
        ValidationError
            If the file is not valid UTF-8 or not a valid key file.
        """
        try:
            with path.open("r", encoding="utf-8", newline="") as f:
                text: str = f.read()
        except UnicodeDecodeError as err:
            raise ValidationError("Key file is not valid UTF-8", path=path, phase="read") from err
        except OSError as err:
            raise FileIOError.from_os_error(err, path=path, phase="read") from err

        try:
            return KeyFile.parse(text)
        except ValidationError as err:
            err.path = path
            raise

    def _find_group(self, group: str) -> _Group | None:
        for candidate in self._groups:
            if candidate.name == group:
                return candidate
        return None

    def groups(self) -> list[str]:
        return [group.name for group in self._groups]

    def has_group(self, group: str) -> bool:
        return self._find_group(group) is not None

    def has_key(self, group: str, key: str) -> bool:
        found: _Group | None = self._find_group(group)
        return found is not None and found.find(key) is not None

    def keys(self, group: str) -> list[str]:
        found: _Group | None = self._find_group(group)
        if found is None:
            return []

        keys: list[str] = []
        for line in found.lines:
            if line.key is not None and line.key not in keys:
                keys.append(line.key)
        return keys

    def get_value(self, group: str, key: str) -> str | None:
        found: _Group | None = self._find_group(group)
        if found is None:
            return None

        line: _Line | None = found.find(key)
        return None if line is None else line.value

    def get_string(self, group: str, key: str) -> str | None:
        raw: str | None = self.get_value(group, key)
        return None if raw is None else unescape_value(raw)

    def get_locale_string(self, group: str, key: str, locales: Sequence[str]) -> str | None:
        """
        Return the first `key[locale]` present for `locales`, else the plain `key`.
        """
        for locale in locales:
            if locale == "C":
                continue
            value: str | None = self.get_string(group, f"{key}[{locale}]")
            if value is not None:
                return value

        return self.get_string(group, key)

    def get_boolean(self, group: str, key: str) -> bool | None:
        raw: str | None = self.get_value(group, key)
        return None if raw is None else parse_boolean(raw)

    def set_string(self, group: str, key: str, value: str) -> None:
        if _KEY_RE.match(key) is None:
            raise ValidationError(f"Invalid key name {key!r}")

        target: _Group | None = self._find_group(group)
        if target is None:
            target = _Group(name=group, header=_Line(text=f"[{group}]", eol=self._newline))
            self._groups.append(target)

        escaped: str = escape_value(value)
        line: _Line | None = target.find(key)
        if line is not None:
            line.text = f"{key}={escaped}"
            line.value = escaped
            return

        # New keys go after the last key line, ahead of trailing blank lines.
        position: int = len(target.lines)
        while position > 0 and target.lines[position - 1].key is None:
            position -= 1
        target.lines.insert(position, _Line(text=f"{key}={escaped}", key=key, value=escaped, eol=self._newline))

    def to_data(self) -> str:
        """
        Serialize the key file. Every line keeps the ending it was read with.
        """
        lines: list[_Line] = list(self._preamble)
        for group in self._groups:
            lines.append(group.header)
            lines.extend(group.lines)

        out: list[str] = []
        for index, line in enumerate(lines):
            eol: str = line.eol
            if not eol and index < len(lines) - 1:
                eol = self._newline
            out.append(line.text + eol)
        return "".join(out)


class DesktopEntry:
    """
    Read-only view of the "Desktop Entry" group of a launcher file.

    Reads of a file that lacks the group behave as if every key were unset.
    """

    def __init__(self, key_file: KeyFile, locales: Sequence[str] | None = None) -> None:
        self.key_file: KeyFile = key_file
        self.locales: list[str] = list(locales) if locales is not None else get_language_names()

    @staticmethod
    def open(path: Path, locales: Sequence[str] | None = None) -> "DesktopEntry | None":
        """
        Open the launcher file at `path`, or return None if it cannot be read
        or parsed.
        """
        try:
            key_file: KeyFile = KeyFile.load(path)
        except (FileIOError, ValidationError) as err:
            _log_debug("Cannot open desktop entry %s: %s", path, err)
            return None

        return DesktopEntry(key_file, locales)

    def read_entry(self, key: str, default: str | None = None) -> str | None:
        value: str | None = self.key_file.get_locale_string(DESKTOP_GROUP, key, self.locales)
        return default if value is None else value

    def read_entry_untranslated(self, key: str, default: str | None = None) -> str | None:
        value: str | None = self.key_file.get_string(DESKTOP_GROUP, key)
        return default if value is None else value

    def read_bool_entry(self, key: str, default: bool = False) -> bool:
        value: bool | None = self.key_file.get_boolean(DESKTOP_GROUP, key)
        return default if value is None else value
