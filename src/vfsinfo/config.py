import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import NoReturn, TypedDict, cast

import yaml

from .execline import DEFAULT_TERMINAL_COMMAND
from .mime import APPLICATION_EXECUTABLE, APPLICATION_SHELLSCRIPT


class RawVfsConfig(TypedDict):
    preferred_locales: list[str]
    terminal_command: list[str]
    executable_types: list[str]


class RawConfigFile(TypedDict):
    config: RawVfsConfig


CONFIG_FILENAME: Path = Path("config.yaml")

DEFAULT_EXECUTABLE_TYPES: tuple[str, ...] = (APPLICATION_EXECUTABLE, APPLICATION_SHELLSCRIPT)


def default_config_path() -> Path:
    config_home: str = os.environ.get("XDG_CONFIG_HOME", "")
    base: Path = Path(config_home) if config_home else Path.home() / ".config"
    return base / "vfsinfo" / CONFIG_FILENAME


def type_error(value: object) -> NoReturn:
    raise TypeError(f"Unexpected value of wrong type: {value!r}")


def _string_list(raw: dict[str, object], key: str, default: list[str]) -> list[str]:
    value: object | None = raw.get(key)
    if value is None:
        return default

    if not isinstance(value, list):
        type_error(value)

    items: list[object] = cast(list[object], value)
    for item in items:
        if not isinstance(item, str):
            type_error(item)

    return cast(list[str], items)


@dataclass(slots=True)
class VfsConfig:
    preferred_locales: list[str] = field(default_factory=list)
    terminal_command: list[str] = field(default_factory=lambda: list(DEFAULT_TERMINAL_COMMAND))
    executable_types: list[str] = field(default_factory=lambda: list(DEFAULT_EXECUTABLE_TYPES))

    @staticmethod
    def load(path: Path | None = None) -> "VfsConfig":
        config_path: Path = default_config_path() if path is None else path

        if not config_path.exists():
            raise FileNotFoundError(f"Missing config file {config_path}.")

        with config_path.open("r", encoding="UTF-8") as f:
            raw_loaded_obj: object | None = cast(object, yaml.safe_load(f))

        if not raw_loaded_obj:
            raise ValueError("Config file is empty or invalid YAML.")

        if not isinstance(raw_loaded_obj, dict):
            type_error(raw_loaded_obj)

        raw_dict: dict[str, object] = cast(dict[str, object], raw_loaded_obj)

        cfg_raw: object | None = raw_dict.get("config")
        if not isinstance(cfg_raw, dict):
            type_error(cfg_raw)

        cfg: dict[str, object] = cast(dict[str, object], cfg_raw)
        defaults: VfsConfig = VfsConfig()

        vfsConfig: VfsConfig = VfsConfig(
            preferred_locales=_string_list(cfg, "preferred_locales", defaults.preferred_locales),
            terminal_command=_string_list(cfg, "terminal_command", defaults.terminal_command),
            executable_types=_string_list(cfg, "executable_types", defaults.executable_types),
        )

        return vfsConfig

    @staticmethod
    def load_or_default(path: Path | None = None) -> "VfsConfig":
        try:
            return VfsConfig.load(path)
        except FileNotFoundError:
            return VfsConfig()

    def save(self, path: Path | None = None) -> None:
        config_path: Path = default_config_path() if path is None else path
        config_path.parent.mkdir(parents=True, exist_ok=True)

        raw: RawConfigFile = {"config": self.to_raw()}
        with config_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(raw, f, sort_keys=False)

    def to_raw(self) -> RawVfsConfig:
        return {
            "preferred_locales": list(self.preferred_locales),
            "terminal_command": list(self.terminal_command),
            "executable_types": list(self.executable_types),
        }
