from collections.abc import Callable
from pathlib import Path

import pytest

from vfsinfo.errors import SpawnError, ValidationError
from vfsinfo.execute import command_for_info, working_directory_for
from vfsinfo.launch import ProcessSpawner
from vfsinfo.location import Location
from vfsinfo.vfs import Vfs

from conftest import RecordingSpawner


def launcher(exec_line: str | None, *extra: str) -> str:
    lines: list[str] = ["[Desktop Entry]", "Type=Application", "Name=Viewer", "Name[de]=Betrachter", "Icon=viewer"]
    if exec_line is not None:
        lines.append(f"Exec={exec_line}")
    lines.extend(extra)
    return "\n".join(lines) + "\n"


@pytest.fixture
def targets(tmp_path: Path) -> list[Location]:
    docs: Path = tmp_path / "docs"
    docs.mkdir()
    first: Path = docs / "first file.txt"
    second: Path = docs / "second.txt"
    _ = first.write_text("1")
    _ = second.write_text("2")
    return [Location.for_path(first), Location.for_path(second)]


def test_execute_desktop_file_with_multiple_targets(
    vfs: Vfs, spawner: RecordingSpawner, make_desktop_file: Callable[..., Path], targets: list[Location]
):
    path = make_desktop_file("viewer.desktop", launcher("viewer --multi %F"))
    info = vfs.info_for_path(path)

    vfs.execute(info, targets, ":1")

    assert spawner.calls == [
        (targets[0].path.parent, ["viewer", "--multi", str(targets[0].path), str(targets[1].path)], ":1")
    ]


def test_execute_desktop_file_single_target_codes(
    vfs: Vfs, spawner: RecordingSpawner, make_desktop_file: Callable[..., Path], targets: list[Location]
):
    path = make_desktop_file("viewer.desktop", launcher("viewer %f %u %n %d"))
    info = vfs.info_for_path(path)

    vfs.execute(info, targets)

    _, argv, display = spawner.calls[0]
    first: Path = targets[0].path
    assert argv == ["viewer", str(first), first.as_uri(), "first file.txt", str(first.parent)]
    assert display is None


def test_execute_desktop_file_icon_name_and_location_codes(
    vfs: Vfs, spawner: RecordingSpawner, make_desktop_file: Callable[..., Path]
):
    path = make_desktop_file("viewer.desktop", launcher("viewer %i --title %c --from %k %%"))
    info = vfs.info_for_path(path)

    vfs.execute(info)

    working_directory, argv, _ = spawner.calls[0]
    assert argv == ["viewer", "--icon", "viewer", "--title", "Betrachter", "--from", str(path), "%"]
    assert working_directory == path.parent


def test_execute_desktop_file_without_targets_drops_file_codes(
    vfs: Vfs, spawner: RecordingSpawner, make_desktop_file: Callable[..., Path]
):
    path = make_desktop_file("viewer.desktop", launcher("viewer %f %U --new-window"))
    info = vfs.info_for_path(path)

    vfs.execute(info)

    assert spawner.calls[0][1] == ["viewer", "--new-window"]


def test_execute_desktop_file_in_terminal(
    vfs: Vfs, spawner: RecordingSpawner, make_desktop_file: Callable[..., Path]
):
    path = make_desktop_file("top.desktop", launcher("top", "Terminal=true"))
    info = vfs.info_for_path(path)

    vfs.execute(info)

    assert spawner.calls[0][1] == ["xterm", "-e", "top"]


def test_execute_desktop_file_without_exec(
    vfs: Vfs, spawner: RecordingSpawner, make_desktop_file: Callable[..., Path]
):
    path = make_desktop_file("link.desktop", launcher(None, "URL=https://example.org/"))
    info = vfs.info_for_path(path)

    with pytest.raises(ValidationError) as excinfo:
        vfs.execute(info)

    assert excinfo.value.message == "No Exec field specified"
    assert excinfo.value.path == path
    assert spawner.calls == []


def test_execute_unparsable_desktop_file(
    vfs: Vfs, spawner: RecordingSpawner, make_desktop_file: Callable[..., Path]
):
    path = make_desktop_file("broken.desktop", "[Desktop Entry]\nthis is not a key file\n")
    info = vfs.info_for_path(path)

    with pytest.raises(ValidationError) as excinfo:
        vfs.execute(info)

    assert excinfo.value.message == "Unable to parse file"
    assert spawner.calls == []


def test_execute_desktop_file_with_unbalanced_quote(
    vfs: Vfs, spawner: RecordingSpawner, make_desktop_file: Callable[..., Path]
):
    path = make_desktop_file("viewer.desktop", launcher('viewer "unterminated %F'))
    info = vfs.info_for_path(path)

    with pytest.raises(ValidationError):
        vfs.execute(info)

    assert spawner.calls == []


def test_execute_plain_executable(tmp_path: Path, vfs: Vfs, spawner: RecordingSpawner, targets: list[Location]):
    path = tmp_path / "bin dir" / "run.sh"
    path.parent.mkdir()
    _ = path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    info = vfs.info_for_path(path)
    assert info.is_executable

    vfs.execute(info, targets)

    working_directory, argv, _ = spawner.calls[0]
    assert argv == [str(path), str(targets[0].path), str(targets[1].path)]
    assert working_directory == targets[0].path.parent


def test_execute_plain_executable_without_targets(tmp_path: Path, vfs: Vfs, spawner: RecordingSpawner):
    path = tmp_path / "run.sh"
    _ = path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    info = vfs.info_for_path(path)

    vfs.execute(info)

    assert spawner.calls == [(tmp_path, [str(path)], None)]


def test_command_for_info_quotes_awkward_paths(tmp_path: Path, vfs: Vfs):
    path = tmp_path / "it's here" / "run $HOME 100%f.sh"
    path.parent.mkdir()
    _ = path.write_text("#!/bin/sh\n")
    info = vfs.info_for_path(path)

    assert command_for_info(info, []) == [str(path)]


def test_working_directory_for(tmp_path: Path, vfs: Vfs, targets: list[Location]):
    path = tmp_path / "tool.sh"
    _ = path.write_text("#!/bin/sh\n")
    info = vfs.info_for_path(path)

    assert working_directory_for(info, []) == tmp_path
    assert working_directory_for(info, targets) == targets[0].path.parent


def test_process_spawner_reports_missing_program(tmp_path: Path):
    spawner = ProcessSpawner(env={"PATH": str(tmp_path)})

    with pytest.raises(SpawnError) as excinfo:
        spawner.spawn(tmp_path, ["vfsinfo-no-such-program"], None)

    assert excinfo.value.phase == "spawn"
    assert excinfo.value.errno is not None
