import logging
import os
import stat
import tempfile
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import IO

from . import mime
from .errors import AlreadyExistsError, FileIOError, ValidationError
from .info import FileHint, FileInfo, FileType
from .keyfile import DESKTOP_GROUP, KeyFile
from .locales import get_language_names
from .location import Location
from .mime import ContentTypeResolver

_log = logging.getLogger(__name__)

_log_debug = _log.debug


def validate_name(name: object) -> str:
    if not isinstance(name, str):
        raise ValidationError(f"Invalid file name {name!r}", phase="validate")
    if not name or "/" in name or "\0" in name or name in (".", ".."):
        raise ValidationError(f"Invalid file name {name!r}", phase="validate")
    return name


@contextmanager
def atomic_replace(path: Path) -> Generator[IO[str], None, None]:
    """
    Write the new content of `path` through a temporary file in the same
    directory, then move it over `path`.

    The original permission bits are kept. On any error the temporary file is
    removed and `path` is left untouched.
    """
    try:
        mode: int = stat.S_IMODE(os.stat(path).st_mode)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as err:
        raise FileIOError.from_os_error(err, path=path, phase="write") from err

    tmp_path: Path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as err:
        tmp_path.unlink(missing_ok=True)
        raise FileIOError.from_os_error(err, path=path, phase="write") from err
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _rename_desktop_file(info: FileInfo, name: str, locales: Sequence[str]) -> None:
    path: Path = info.path

    key_file: KeyFile = KeyFile.load(path)
    if not key_file.has_group(DESKTOP_GROUP):
        raise ValidationError("Invalid desktop file", path=path, phase="parse")

    # Save the new name under the first translation the file already has.
    key: str = "Name"
    for locale in locales:
        candidate: str = f"Name[{locale}]"
        if key_file.has_key(DESKTOP_GROUP, candidate):
            key = candidate
            break

    key_file.set_string(DESKTOP_GROUP, key, name)
    data: str = key_file.to_data()

    with atomic_replace(path) as f:
        _ = f.write(data)

    _log_debug("Set %s of %s to %r", key, path, name)

    if info.hints is not None:
        info.hints[FileHint.NAME] = name


def _rename_file(info: FileInfo, name: str, mime_database: ContentTypeResolver) -> None:
    src_path: Path = info.path

    try:
        dst_name: bytes = os.fsencode(name)
    except UnicodeEncodeError as err:
        raise ValidationError(f"Cannot encode file name {name!r}", path=src_path, phase="validate") from err

    dst_path: Path = src_path.parent / os.fsdecode(dst_name)

    # Check and rename are two steps; a file created in between is replaced.
    if os.path.lexists(dst_path):
        raise AlreadyExistsError(f"File exists: {dst_path.name}", path=dst_path, phase="rename")

    try:
        os.rename(src_path, dst_path)
    except OSError as err:
        raise FileIOError.from_os_error(err, path=src_path, phase="rename") from err

    _log_debug("Renamed %s to %s", src_path, dst_path)

    info.location = Location.for_path(dst_path)
    info.display_name = name

    # The content type of regular files may depend on the name.
    if info.type == FileType.REGULAR:
        info.mime_info = mime_database.get_info_for_file(dst_path, info.display_name)


def rename_info(
    info: FileInfo,
    name: str,
    mime_database: ContentTypeResolver,
    *,
    locales: Sequence[str] | None = None,
) -> None:
    """
    Rename the file described by `info` to `name`, updating `info` in place.

    Launcher files keep their file name; the new name is written to their
    Name key instead (the translation for the first of `locales` the file
    already has, else the untranslated key). Any other file is renamed
    within its directory.

    The caller must hold exclusive access to `info` for the duration of the
    call.

    Raises
    ------
    ValidationError
        If `name` is empty, contains a slash, cannot be encoded, or the
        launcher file is malformed.
    AlreadyExistsError
        If a sibling called `name` already exists.
    FileIOError
        If reading, writing or renaming fails.
    """
    assert info.is_alive

    valid_name: str = validate_name(name)

    if info.mime_info.name == mime.APPLICATION_DESKTOP:
        _rename_desktop_file(info, valid_name, get_language_names() if locales is None else locales)
    else:
        _rename_file(info, valid_name, mime_database)
