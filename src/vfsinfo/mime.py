import logging
import mimetypes
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import magic

_log = logging.getLogger(__name__)

_log_debug = _log.debug

INODE_BLOCKDEVICE: str = "inode/blockdevice"
INODE_CHARDEVICE: str = "inode/chardevice"
INODE_DIRECTORY: str = "inode/directory"
INODE_FIFO: str = "inode/fifo"
INODE_SOCKET: str = "inode/socket"
INODE_SYMLINK: str = "inode/symlink"

APPLICATION_DESKTOP: str = "application/x-desktop"
APPLICATION_EXECUTABLE: str = "application/x-executable"
APPLICATION_SHELLSCRIPT: str = "application/x-shellscript"
APPLICATION_SHAREDLIB: str = "application/x-sharedlib"
APPLICATION_OCTET_STREAM: str = "application/octet-stream"
APPLICATION_ZEROSIZE: str = "application/x-zerosize"
TEXT_PLAIN: str = "text/plain"

# Format: "alias": "canonical name"
ALIASES: dict[str, str] = {
    "application/x-sh": APPLICATION_SHELLSCRIPT,
    "text/x-sh": APPLICATION_SHELLSCRIPT,
    "text/x-shellscript": APPLICATION_SHELLSCRIPT,
    "application/x-elf": APPLICATION_EXECUTABLE,
    "application/x-pie-executable": APPLICATION_EXECUTABLE,
    "application/x-gnome-app-info": APPLICATION_DESKTOP,
    "application/x-desktop-entry": APPLICATION_DESKTOP,
    "text/x-python3": "text/x-python",
    "application/x-python": "text/x-python",
    "text/x-script.python": "text/x-python",
    "application/x-empty": APPLICATION_ZEROSIZE,
    "inode/x-empty": APPLICATION_ZEROSIZE,
}

# Format: "type": ("parent type", ...)
SUBCLASSES: dict[str, tuple[str, ...]] = {
    APPLICATION_SHELLSCRIPT: (APPLICATION_EXECUTABLE, TEXT_PLAIN),
    APPLICATION_DESKTOP: (TEXT_PLAIN,),
    APPLICATION_SHAREDLIB: (APPLICATION_OCTET_STREAM,),
    APPLICATION_EXECUTABLE: (APPLICATION_OCTET_STREAM,),
    "application/x-csh": (APPLICATION_SHELLSCRIPT,),
    "application/x-zsh": (APPLICATION_SHELLSCRIPT,),
    "text/x-python": (TEXT_PLAIN,),
}

# Checked before the platform mimetypes tables, which disagree on these.
# Format: ".ext": "mime/type"
EXTENSION_MAP: dict[str, str] = {
    ".desktop": APPLICATION_DESKTOP,
    ".sh": APPLICATION_SHELLSCRIPT,
    ".bash": APPLICATION_SHELLSCRIPT,
    ".ksh": APPLICATION_SHELLSCRIPT,
    ".csh": "application/x-csh",
    ".zsh": "application/x-zsh",
    ".so": APPLICATION_SHAREDLIB,
    ".py": "text/x-python",
}


@dataclass(frozen=True, slots=True, eq=False)
class MimeInfo:
    """
    An interned content-type record.

    Instances are only created by a `MimeDatabase`, which hands out the same
    object for the same name, so content types compare by identity.
    """

    name: str

    @property
    def media(self) -> str:
        return self.name.split("/", 1)[0]

    @property
    def subtype(self) -> str:
        return self.name.split("/", 1)[-1]

    def __str__(self) -> str:
        return self.name


class ContentTypeResolver(Protocol):
    def get_info(self, name: str) -> MimeInfo: ...

    def get_info_for_file(self, path: Path, name: str) -> MimeInfo: ...

    def get_infos_for_info(self, info: MimeInfo) -> list[MimeInfo]: ...

    def close(self) -> None: ...


class MimeDatabase:
    """
    Content-type resolver backed by a name table, the platform `mimetypes`
    registry and libmagic.

    Classification by name wins; the file content is inspected only when the
    name says nothing. Records are interned under a lock, so the same name
    always resolves to the same `MimeInfo` object, from any thread.
    """

    def __init__(self, extension_map: dict[str, str] | None = None) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._infos: dict[str, MimeInfo] = {}
        self._extension_map: dict[str, str] = dict(EXTENSION_MAP)
        if extension_map is not None:
            self._extension_map.update({ext.lower(): name for ext, name in extension_map.items()})
        self._mimetypes: mimetypes.MimeTypes = mimetypes.MimeTypes()
        self._magic_lock: threading.Lock = threading.Lock()
        self._magic: magic.Magic = magic.Magic(mime=True)
        self._closed: bool = False

    def __enter__(self) -> "MimeDatabase":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            self._infos.clear()
            self._closed = True

    def canonical_name(self, name: str) -> str:
        lowered: str = name.strip().lower()
        return ALIASES.get(lowered, lowered)

    def get_info(self, name: str) -> MimeInfo:
        canonical: str = self.canonical_name(name)

        with self._lock:
            assert not self._closed, "mime database used after close()"

            info: MimeInfo | None = self._infos.get(canonical)
            if info is None:
                info = MimeInfo(name=canonical)
                self._infos[canonical] = info

        return info

    def guess_name_from_filename(self, name: str) -> str | None:
        suffix: str = Path(name).suffix.lower()
        if suffix in self._extension_map:
            return self._extension_map[suffix]

        guessed, encoding = self._mimetypes.guess_type(name, strict=False)
        if guessed is None or encoding is not None:
            return None

        return guessed

    def guess_name_from_content(self, path: Path) -> str:
        """
        Ask libmagic for the content type of `path`, following symlinks.

        Unreadable files are reported as `application/octet-stream`.
        """
        real_path: str = os.path.realpath(path)

        try:
            # A libmagic cookie must not be used from two threads at once.
            with self._magic_lock:
                detected: str = self._magic.from_file(real_path)
        except (magic.MagicException, OSError) as err:
            _log_debug("Cannot inspect content of %s: %s", path, err)
            return APPLICATION_OCTET_STREAM

        return self.canonical_name(detected)

    def get_info_for_file(self, path: Path, name: str) -> MimeInfo:
        """
        Classify the file at `path` whose display name is `name`.
        """
        guessed: str | None = self.guess_name_from_filename(name)

        if guessed is None:
            guessed = self.guess_name_from_content(path)

        _log_debug("Classified %s as %s", path, guessed)

        return self.get_info(guessed)

    def get_infos_for_info(self, info: MimeInfo) -> list[MimeInfo]:
        """
        Return `info` followed by every type it generalizes to, nearest first.
        """
        names: list[str] = [info.name]

        index: int = 0
        while index < len(names):
            current: str = names[index]
            index += 1

            parents: list[str] = list(SUBCLASSES.get(current, ()))
            if current.startswith("text/") and current != TEXT_PLAIN:
                parents.append(TEXT_PLAIN)
            if not current.startswith("inode/") and current != APPLICATION_OCTET_STREAM:
                parents.append(APPLICATION_OCTET_STREAM)

            for parent in parents:
                if parent not in names:
                    names.append(parent)

        return [self.get_info(name) for name in names]
