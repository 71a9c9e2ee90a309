from collections.abc import Iterable, Sequence
from os import PathLike
from types import TracebackType

from .config import VfsConfig
from .execute import execute_info
from .info import FileInfo, build_info, unref_all
from .launch import ProcessSpawner, Spawner
from .locales import get_language_names
from .location import Location
from .mime import ContentTypeResolver, MimeDatabase
from .rename import rename_info


class Vfs:
    """
    Entry point that owns the collaborators of the info operations.

    The content-type resolver is created (or adopted) when the `Vfs` is
    constructed and released by `shutdown()`, which the context manager
    calls on exit. Infos built through a `Vfs` must not be renamed after it
    was shut down.
    """

    def __init__(
        self,
        mime_database: ContentTypeResolver | None = None,
        config: VfsConfig | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        self.mime_database: ContentTypeResolver = MimeDatabase() if mime_database is None else mime_database
        self.config: VfsConfig = VfsConfig.load_or_default() if config is None else config
        self.spawner: Spawner = ProcessSpawner() if spawner is None else spawner

    def __enter__(self) -> "Vfs":
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        self.shutdown()

    def shutdown(self) -> None:
        self.mime_database.close()

    @property
    def locales(self) -> list[str]:
        if self.config.preferred_locales:
            return list(self.config.preferred_locales)
        return get_language_names()

    def info_for_location(self, location: Location) -> FileInfo:
        return build_info(
            location,
            self.mime_database,
            executable_types=self.config.executable_types,
            locales=self.locales,
        )

    def info_for_path(self, path: str | PathLike[str]) -> FileInfo:
        return self.info_for_location(Location.for_path(path))

    def rename(self, info: FileInfo, name: str) -> None:
        rename_info(info, name, self.mime_database, locales=self.locales)

    def execute(self, info: FileInfo, locations: Sequence[Location] = (), display: str | None = None) -> None:
        execute_info(
            info,
            locations,
            display,
            spawner=self.spawner,
            terminal_command=self.config.terminal_command,
            locales=self.locales,
        )

    def release(self, infos: Iterable[FileInfo]) -> None:
        unref_all(infos)
