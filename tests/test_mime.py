import threading
from pathlib import Path

import pytest

from vfsinfo import mime
from vfsinfo.mime import MimeDatabase

from conftest import ELF_HEADER, SHARED_OBJECT_HEADER


@pytest.mark.parametrize(
    "content, expected",
    [
        (b"", mime.APPLICATION_ZEROSIZE),
        (ELF_HEADER, mime.APPLICATION_EXECUTABLE),
        (SHARED_OBJECT_HEADER, mime.APPLICATION_SHAREDLIB),
        (b"#!/bin/sh\necho hi\n", mime.APPLICATION_SHELLSCRIPT),
        (b"#!/usr/bin/env python3\nprint('hi')\n", "text/x-python"),
        (b"hello world\nthis is plain text\n", mime.TEXT_PLAIN),
    ],
)
def test_guess_name_from_content(tmp_path: Path, mime_database: MimeDatabase, content: bytes, expected: str):
    path = tmp_path / "unnamed"
    _ = path.write_bytes(content)

    assert mime_database.guess_name_from_content(path) == expected


def test_guess_name_from_content_follows_symlinks(tmp_path: Path, mime_database: MimeDatabase):
    target = tmp_path / "script"
    _ = target.write_text("#!/bin/sh\necho hi\n")
    link = tmp_path / "link"
    link.symlink_to(target)

    assert mime_database.guess_name_from_content(link) == mime.APPLICATION_SHELLSCRIPT


def test_get_info_interns_records(mime_database: MimeDatabase):
    first = mime_database.get_info("text/plain")

    assert mime_database.get_info("TEXT/PLAIN") is first
    assert mime_database.get_info("application/x-sh") is mime_database.get_info(mime.APPLICATION_SHELLSCRIPT)
    assert first.media == "text"
    assert first.subtype == "plain"
    assert str(first) == "text/plain"


def test_get_info_from_many_threads(mime_database: MimeDatabase):
    results: list[mime.MimeInfo] = []
    lock = threading.Lock()

    def worker():
        info = mime_database.get_info("image/png")
        with lock:
            results.append(info)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 16
    assert all(info is results[0] for info in results)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("launcher.desktop", mime.APPLICATION_DESKTOP),
        ("SCRIPT.SH", mime.APPLICATION_SHELLSCRIPT),
        ("libfoo.so", mime.APPLICATION_SHAREDLIB),
        ("notes.txt", mime.TEXT_PLAIN),
        ("photo.png", "image/png"),
        ("archive.tar.gz", None),
        ("README", None),
    ],
)
def test_guess_name_from_filename(mime_database: MimeDatabase, name: str, expected: str | None):
    assert mime_database.guess_name_from_filename(name) == expected


def test_custom_extension_map():
    with MimeDatabase(extension_map={".XYZ": "application/x-xyz"}) as db:
        assert db.guess_name_from_filename("data.xyz") == "application/x-xyz"


def test_get_info_for_file_prefers_name_over_content(tmp_path: Path, mime_database: MimeDatabase):
    path = tmp_path / "looks-like.txt"
    _ = path.write_text("#!/bin/sh\n")

    assert mime_database.get_info_for_file(path, path.name).name == mime.TEXT_PLAIN


def test_get_info_for_file_inspects_content_of_unknown_names(tmp_path: Path, mime_database: MimeDatabase):
    path = tmp_path / "configure"
    _ = path.write_text("#!/bin/sh\n")

    assert mime_database.get_info_for_file(path, path.name).name == mime.APPLICATION_SHELLSCRIPT


def test_get_info_for_unreadable_file(tmp_path: Path, mime_database: MimeDatabase):
    assert mime_database.get_info_for_file(tmp_path / "gone", "gone").name == mime.APPLICATION_OCTET_STREAM


def test_get_infos_for_info(mime_database: MimeDatabase):
    shellscript = mime_database.get_info(mime.APPLICATION_SHELLSCRIPT)

    names = [info.name for info in mime_database.get_infos_for_info(shellscript)]

    assert names == [
        mime.APPLICATION_SHELLSCRIPT,
        mime.APPLICATION_EXECUTABLE,
        mime.TEXT_PLAIN,
        mime.APPLICATION_OCTET_STREAM,
    ]


def test_get_infos_for_inode_types(mime_database: MimeDatabase):
    directory = mime_database.get_info(mime.INODE_DIRECTORY)

    assert mime_database.get_infos_for_info(directory) == [directory]


def test_get_infos_for_text_subtype(mime_database: MimeDatabase):
    html = mime_database.get_info("text/html")

    names = [info.name for info in mime_database.get_infos_for_info(html)]

    assert names == ["text/html", mime.TEXT_PLAIN, mime.APPLICATION_OCTET_STREAM]


def test_closed_database_refuses_lookups():
    db = MimeDatabase()
    db.close()

    with pytest.raises(AssertionError):
        _ = db.get_info("text/plain")
