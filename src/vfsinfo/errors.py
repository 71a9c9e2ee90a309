import errno as errno_codes
from pathlib import Path


class VfsError(Exception):
    """
    Base class for every error raised by vfsinfo.

    `path` is the filesystem path the failing operation worked on and
    `phase` names the step that failed ("stat", "read", "write", "rename",
    "spawn", "parse").
    """

    def __init__(self, message: str, *, path: Path | None = None, phase: str | None = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.path: Path | None = path
        self.phase: str | None = phase

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message} ({self.path})"


class FileIOError(VfsError):
    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        phase: str | None = None,
        errno: int | None = None,
        strerror: str | None = None,
    ) -> None:
        super().__init__(message, path=path, phase=phase)
        self.errno: int | None = errno
        self.strerror: str | None = strerror

    @classmethod
    def from_os_error(cls, err: OSError, *, path: Path, phase: str) -> "FileIOError":
        strerror: str = err.strerror or str(err)
        message: str = f"Failed to {phase} file: {strerror}"

        if err.errno in (errno_codes.ENOENT, errno_codes.ENOTDIR):
            return NotFoundError(message, path=path, phase=phase, errno=err.errno, strerror=strerror)

        return cls(message, path=path, phase=phase, errno=err.errno, strerror=strerror)


class NotFoundError(FileIOError):
    pass


class SpawnError(FileIOError):
    pass


class ValidationError(VfsError, ValueError):
    pass


class AlreadyExistsError(VfsError):
    def __init__(self, message: str, *, path: Path | None = None, phase: str | None = None) -> None:
        super().__init__(message, path=path, phase=phase)
        self.errno: int = errno_codes.EEXIST


class UnreachableStateError(VfsError, AssertionError):
    """
    Raised for states that indicate a defect or platform drift, such as
    file-type bits from stat() that map to no known file type.
    """
