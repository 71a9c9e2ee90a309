import os
from dataclasses import dataclass
from pathlib import Path


def _display_name_for(path: Path) -> str:
    name: str = path.name or str(path)

    # File names that are not valid in the filesystem encoding come back from
    # os.fsdecode() with surrogate escapes; render them with replacement chars.
    raw: bytes = os.fsencode(name)
    return raw.decode("utf-8", errors="replace")


@dataclass(frozen=True, slots=True)
class Location:
    """
    An absolute filesystem location.

    Locations are immutable values: two locations are equal when their
    normalized paths are equal, and a single instance can be shared freely
    between descriptors and threads. Symlinks are *not* resolved, since the
    descriptor for a symlink must describe the link itself.
    """

    path: Path

    @classmethod
    def for_path(cls, path: str | os.PathLike[str]) -> "Location":
        return cls(path=Path(os.path.abspath(os.fspath(path))))

    @property
    def display_name(self) -> str:
        return _display_name_for(self.path)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def parent(self) -> "Location":
        return Location(path=self.path.parent)

    @property
    def uri(self) -> str:
        return self.path.as_uri()

    def sibling(self, name: str) -> "Location":
        return Location(path=self.path.parent / name)

    def __fspath__(self) -> str:
        return str(self.path)

    def __str__(self) -> str:
        return str(self.path)
