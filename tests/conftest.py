from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest

from vfsinfo.config import VfsConfig
from vfsinfo.mime import MimeDatabase
from vfsinfo.vfs import Vfs

ELF_HEADER: bytes = b"\x7fELF\x02\x01\x01\x00" + b"\x00" * 8 + b"\x02\x00\x3e\x00" + b"\x00" * 44
SHARED_OBJECT_HEADER: bytes = b"\x7fELF\x02\x01\x01\x00" + b"\x00" * 8 + b"\x03\x00\x3e\x00" + b"\x00" * 44


class RecordingSpawner:
    def __init__(self) -> None:
        self.calls: list[tuple[Path, list[str], str | None]] = []

    def spawn(self, working_directory: Path, argv: Sequence[str], display: str | None) -> None:
        self.calls.append((working_directory, list(argv), display))


@pytest.fixture
def mime_database() -> Iterator[MimeDatabase]:
    with MimeDatabase() as db:
        yield db


@pytest.fixture
def spawner() -> RecordingSpawner:
    return RecordingSpawner()


@pytest.fixture
def vfs(mime_database: MimeDatabase, spawner: RecordingSpawner) -> Vfs:
    config = VfsConfig(preferred_locales=["de_DE", "de", "C"], terminal_command=["xterm", "-e"])
    return Vfs(mime_database=mime_database, config=config, spawner=spawner)


@pytest.fixture
def elf_header() -> bytes:
    return ELF_HEADER


@pytest.fixture
def make_desktop_file(tmp_path: Path) -> Callable[..., Path]:
    def make(name: str, body: str, mode: int = 0o644) -> Path:
        path: Path = tmp_path / name
        _ = path.write_text(body, encoding="utf-8")
        path.chmod(mode)
        return path

    return make
