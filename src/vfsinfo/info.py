import enum
import logging
import os
import stat
import threading
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from . import mime
from .errors import FileIOError, UnreachableStateError
from .keyfile import DesktopEntry
from .location import Location
from .mime import ContentTypeResolver, MimeInfo

_log = logging.getLogger(__name__)

_log_debug = _log.debug

_S_IFDOOR: int = 0o150000


class FileType(enum.IntEnum):
    UNKNOWN = 0
    FIFO = stat.S_IFIFO >> 12
    CHARDEV = stat.S_IFCHR >> 12
    DIRECTORY = stat.S_IFDIR >> 12
    BLOCKDEV = stat.S_IFBLK >> 12
    REGULAR = stat.S_IFREG >> 12
    SYMLINK = stat.S_IFLNK >> 12
    SOCKET = stat.S_IFSOCK >> 12
    DOOR = _S_IFDOOR >> 12


class FileFlags(enum.Flag):
    NONE = 0
    SYMLINK = enum.auto()
    EXECUTABLE = enum.auto()


class FileHint(enum.Enum):
    ICON = "icon"
    NAME = "name"


_FILE_TYPES_BY_FORMAT: dict[int, FileType] = {
    stat.S_IFIFO: FileType.FIFO,
    stat.S_IFCHR: FileType.CHARDEV,
    stat.S_IFDIR: FileType.DIRECTORY,
    stat.S_IFBLK: FileType.BLOCKDEV,
    stat.S_IFREG: FileType.REGULAR,
    stat.S_IFLNK: FileType.SYMLINK,
    stat.S_IFSOCK: FileType.SOCKET,
    _S_IFDOOR: FileType.DOOR,
}

_MIME_NAMES_BY_TYPE: dict[FileType, str] = {
    FileType.SOCKET: mime.INODE_SOCKET,
    FileType.SYMLINK: mime.INODE_SYMLINK,
    FileType.BLOCKDEV: mime.INODE_BLOCKDEVICE,
    FileType.DIRECTORY: mime.INODE_DIRECTORY,
    FileType.CHARDEV: mime.INODE_CHARDEVICE,
    FileType.FIFO: mime.INODE_FIFO,
}


def file_type_from_mode(mode: int) -> FileType:
    """
    Map the file-format bits of an st_mode value to a `FileType`.

    Raises
    ------
    UnreachableStateError
        If the bits match no known file type.
    """
    file_format: int = stat.S_IFMT(mode)

    file_type: FileType | None = _FILE_TYPES_BY_FORMAT.get(file_format)
    if file_type is None:
        raise UnreachableStateError(f"Unknown file format bits {file_format:#o} in mode {mode:#o}")

    return file_type


@dataclass(slots=True, eq=False)
class FileInfo:
    """
    Metadata for one filesystem node, shared between owners by reference
    counting.

    A `FileInfo` starts with one reference, owned by whoever built it. Each
    additional owner calls `ref()` and every owner calls `unref()` once when
    done; the release of the last reference tears the record down.
    `ref()`/`unref()` may be called from any thread.

    Only `rename_info()` mutates a live record (`location`, `display_name`,
    `mime_info` and the NAME hint). It is not synchronized: the caller must
    make sure no other thread reads those fields while a rename runs.

    Equality and hashing are by identity, so a shared record can be kept in
    sets and used as a dict key. Use `matches()` to compare two records of
    the same file.
    """

    location: Location
    display_name: str
    type: FileType
    mode: int
    flags: FileFlags
    uid: int
    gid: int
    size: int
    atime_ns: int
    ctime_ns: int
    mtime_ns: int
    inode: int
    device: int
    mime_info: MimeInfo
    hints: dict[FileHint, str] | None = None

    _ref_count: int = field(default=1, init=False, repr=False)
    _ref_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def path(self) -> Path:
        return self.location.path

    @property
    def ref_count(self) -> int:
        return self._ref_count

    @property
    def is_alive(self) -> bool:
        return self._ref_count > 0

    @property
    def is_symlink(self) -> bool:
        return FileFlags.SYMLINK in self.flags

    @property
    def is_executable(self) -> bool:
        return FileFlags.EXECUTABLE in self.flags

    @property
    def is_desktop_file(self) -> bool:
        return self.mime_info.name == mime.APPLICATION_DESKTOP

    def ref(self) -> "FileInfo":
        with self._ref_lock:
            assert self._ref_count > 0, "ref() on a released FileInfo"
            self._ref_count += 1
        return self

    def unref(self) -> bool:
        """
        Release one reference. Returns True if this released the last one.
        """
        with self._ref_lock:
            assert self._ref_count > 0, "unref() on a released FileInfo"
            self._ref_count -= 1
            if self._ref_count > 0:
                return False

        self._finalize()
        return True

    def _finalize(self) -> None:
        _log_debug("Releasing info for %s", self.location)
        self.hints = None

    def get_hint(self, hint: FileHint) -> str | None:
        assert self.is_alive
        if self.hints is None:
            return None
        return self.hints.get(hint)

    def matches(self, other: "FileInfo") -> bool:
        """
        Check whether `self` and `other` refer to the same file and share the
        same properties.
        """
        assert self.is_alive and other.is_alive

        return (
            self.type == other.type
            and self.mode == other.mode
            and self.flags == other.flags
            and self.uid == other.uid
            and self.gid == other.gid
            and self.size == other.size
            and self.atime_ns == other.atime_ns
            and self.mtime_ns == other.mtime_ns
            and self.ctime_ns == other.ctime_ns
            and self.inode == other.inode
            and self.device == other.device
            and self.mime_info is other.mime_info
            and self.location == other.location
        )


def unref_all(infos: Iterable[FileInfo]) -> None:
    """
    Release one reference on every info in `infos`.
    """
    for info in infos:
        _ = info.unref()


def _mime_info_for_type(
    file_type: FileType, path: Path, display_name: str, mime_database: ContentTypeResolver
) -> MimeInfo:
    if file_type == FileType.REGULAR:
        return mime_database.get_info_for_file(path, display_name)

    name: str | None = _MIME_NAMES_BY_TYPE.get(file_type)
    if name is None:
        raise UnreachableStateError(f"No content type for file type {file_type.name}")

    return mime_database.get_info(name)


def _is_executable_type(
    mime_info: MimeInfo, mime_database: ContentTypeResolver, executable_types: Collection[str]
) -> bool:
    for candidate in mime_database.get_infos_for_info(mime_info):
        if candidate.name in executable_types:
            return True
    return False


def _read_desktop_hints(
    path: Path, flags: FileFlags, locales: Sequence[str] | None
) -> tuple[dict[FileHint, str] | None, FileFlags]:
    entry: DesktopEntry | None = DesktopEntry.open(path, locales)
    if entry is None:
        return None, flags

    hints: dict[FileHint, str] = {}

    icon: str | None = entry.read_entry_untranslated("Icon")
    if icon is not None:
        hints[FileHint.ICON] = icon

    name: str | None = entry.read_entry("Name")
    if name is not None:
        hints[FileHint.NAME] = name

    # No execute permission needed on the launcher file itself.
    entry_type: str | None = entry.read_entry_untranslated("Type", "Application")
    if entry_type == "Application" and entry.read_entry("Exec"):
        flags |= FileFlags.EXECUTABLE

    return hints, flags


def build_info(
    location: Location,
    mime_database: ContentTypeResolver,
    *,
    executable_types: Collection[str] = (mime.APPLICATION_EXECUTABLE, mime.APPLICATION_SHELLSCRIPT),
    locales: Sequence[str] | None = None,
) -> FileInfo:
    """
    Query the metadata of the node at `location`.

    Symlinks are followed for the attributes, but `FileFlags.SYMLINK` records
    that the node was a link. A dangling link is described by the link inode
    itself with type `FileType.SYMLINK`.

    Parameters
    ----------
    location : Location
        The node to describe.
    mime_database : ContentTypeResolver
        Resolver used to classify regular files.
    executable_types : Collection[str]
        Content types that may be run directly.
    locales : Sequence[str] | None
        Preferred locales for translated launcher keys; None derives them
        from the environment.

    Returns
    -------
    FileInfo
        A new info holding one reference.

    Raises
    ------
    FileIOError
        If the node cannot be stat'ed (`NotFoundError` if it does not exist).
    UnreachableStateError
        If stat() reports a file type that has no counterpart.
    """
    path: Path = location.path

    try:
        lsb: os.stat_result = os.lstat(path)
    except OSError as err:
        raise FileIOError.from_os_error(err, path=path, phase="stat") from err

    sb: os.stat_result = lsb
    file_type: FileType
    flags: FileFlags = FileFlags.NONE

    if not stat.S_ISLNK(lsb.st_mode):
        file_type = file_type_from_mode(lsb.st_mode)
    else:
        flags = FileFlags.SYMLINK
        try:
            sb = os.stat(path)
        except OSError:
            file_type = FileType.SYMLINK
        else:
            file_type = file_type_from_mode(sb.st_mode)

    display_name: str = location.display_name
    mime_info: MimeInfo = _mime_info_for_type(file_type, path, display_name, mime_database)
    hints: dict[FileHint, str] | None = None

    if file_type == FileType.REGULAR:
        # Only well-known content types count as executable.
        if (sb.st_mode & 0o444) != 0 and os.access(path, os.X_OK):
            if _is_executable_type(mime_info, mime_database, executable_types):
                flags |= FileFlags.EXECUTABLE

        if mime_info.name == mime.APPLICATION_DESKTOP:
            hints, flags = _read_desktop_hints(path, flags, locales)

    info: FileInfo = FileInfo(
        location=location,
        display_name=display_name,
        type=file_type,
        mode=stat.S_IMODE(sb.st_mode),
        flags=flags,
        uid=sb.st_uid,
        gid=sb.st_gid,
        size=sb.st_size,
        atime_ns=sb.st_atime_ns,
        ctime_ns=sb.st_ctime_ns,
        mtime_ns=sb.st_mtime_ns,
        inode=sb.st_ino,
        device=sb.st_dev,
        mime_info=mime_info,
        hints=hints,
    )

    _log_debug("Built info for %s: type=%s mime=%s flags=%s", path, file_type.name, mime_info, flags)

    return info
