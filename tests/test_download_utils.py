"""Tests for filename resolution, directory provisioning and timestamp sync."""
import os
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from grabfile.download import (
    ResponseMetadata,
    guess_filename,
    mkdirp,
    resolve_destination,
    sanitize_filename,
    set_last_modified,
)
from grabfile.errors import GrabError, NoFilenameAvailable

LAST_MODIFIED = "Wed, 21 Oct 2015 07:28:00 GMT"
LAST_MODIFIED_TS = datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc).timestamp()


# --- sanitize_filename ---


@pytest.mark.parametrize(
    "candidate, expected",
    [
        ("report.pdf", "report.pdf"),
        ("../../etc/passwd", "passwd"),
        ("/a/b/c.txt", "c.txt"),
        ("a/./b/../c.txt", "c.txt"),
        ("//double//slashes.bin", "slashes.bin"),
        ("..hidden", "..hidden"),
    ],
)
def test_sanitize_filename_keeps_base_name(candidate: str, expected: str) -> None:
    assert sanitize_filename(candidate) == expected


@pytest.mark.parametrize("candidate", ["", "a/", "/", "a\x00b", ".", "..", "/..", "a/.."])
def test_sanitize_filename_rejects(candidate: str) -> None:
    with pytest.raises(NoFilenameAvailable):
        sanitize_filename(candidate)


@pytest.mark.parametrize(
    "candidate",
    ["../../../../tmp/evil", "/etc/shadow", "a/../../b/../../c", "....//....//x"],
)
def test_sanitize_filename_never_escapes_directory(candidate: str, tmp_path: Path) -> None:
    name = sanitize_filename(candidate)
    assert "/" not in name
    assert os.sep not in name
    assert (tmp_path / name).resolve().parent == tmp_path.resolve()


def test_no_filename_is_grab_error() -> None:
    assert issubclass(NoFilenameAvailable, GrabError)


# --- guess_filename ---


def test_guess_filename_prefers_content_disposition() -> None:
    meta = ResponseMetadata(
        url_path="/download/other.bin",
        content_disposition='attachment; filename="report.pdf"',
    )
    assert guess_filename(meta) == "report.pdf"


def test_guess_filename_from_url_path_without_query() -> None:
    meta = ResponseMetadata.from_url("https://example.com/files/data.csv?x=1")
    assert guess_filename(meta) == "data.csv"


def test_guess_filename_sanitizes_header_value() -> None:
    meta = ResponseMetadata(
        url_path="/x",
        content_disposition='attachment; filename="../../bin/evil.sh"',
    )
    assert guess_filename(meta) == "evil.sh"


@pytest.mark.parametrize(
    "disposition",
    [
        "inline",
        'attachment; filename=""',
        'attachment; filename="/"',
        'attachment; filename="dir/"',
        '; filename="nodisposition.txt"',
        'attachment; filename="a.pdf"; filename="b.pdf"',
        'attachment; filename="unterminated.pdf',
        "attachment; filename=a b.pdf",
        'attachment filename="missing-semicolon.pdf"',
        'attachment; filename',
        'attach ment; filename="x.pdf"',
    ],
)
def test_guess_filename_falls_back_to_url(disposition: str) -> None:
    meta = ResponseMetadata(url_path="/files/fallback.zip", content_disposition=disposition)
    assert guess_filename(meta) == "fallback.zip"


def test_guess_filename_decodes_rfc2231_parameter() -> None:
    meta = ResponseMetadata(
        url_path="/x",
        content_disposition="attachment; filename*=UTF-8''na%C3%AFve%20file.txt",
    )
    assert guess_filename(meta) == "naïve file.txt"


@pytest.mark.parametrize(
    "disposition, expected",
    [
        ('attachment; filename="report.pdf";', "report.pdf"),
        ("ATTACHMENT; FileName=plain.txt", "plain.txt"),
        ('attachment ;  filename = "spaced.txt" ', "spaced.txt"),
        (r'attachment; filename="say \"hi\".txt"', 'say "hi".txt'),
        ('attachment; filename*0="long"; filename*1="name.txt"', "longname.txt"),
        (
            "attachment; filename*0*=UTF-8''caf%C3%A9; filename*1=\".txt\"",
            "café.txt",
        ),
        (
            "attachment; filename=\"fallback.txt\"; filename*=UTF-8''pr%C3%A9f%C3%A9r%C3%A9.txt",
            "préféré.txt",
        ),
        ("attachment; filename=\"kept.txt\"; filename*=bogus''x.txt", "kept.txt"),
    ],
)
def test_guess_filename_parses_well_formed_disposition(
    disposition: str, expected: str
) -> None:
    meta = ResponseMetadata(url_path="/files/fallback.zip", content_disposition=disposition)
    assert guess_filename(meta) == expected


def test_guess_filename_fails_when_no_source_usable() -> None:
    meta = ResponseMetadata(url_path="/dir/", content_disposition="attachment")
    with pytest.raises(NoFilenameAvailable):
        guess_filename(meta)


def test_guess_filename_empty_url_path() -> None:
    meta = ResponseMetadata.from_url("https://example.com")
    with pytest.raises(NoFilenameAvailable):
        guess_filename(meta)


# --- ResponseMetadata ---


def test_metadata_from_response_uses_request_url() -> None:
    request = httpx.Request("GET", "https://example.com/files/a%20b.txt?token=1")
    response = httpx.Response(
        200,
        headers={"content-disposition": "inline", "last-modified": LAST_MODIFIED},
        request=request,
    )
    meta = ResponseMetadata.from_response(response)
    assert meta.url_path == "/files/a b.txt"
    assert meta.content_disposition == "inline"
    assert meta.last_modified == LAST_MODIFIED


def test_metadata_from_url_header_lookup_is_case_insensitive() -> None:
    meta = ResponseMetadata.from_url(
        "https://example.com/a.txt",
        {"content-disposition": 'attachment; filename="b.txt"'},
    )
    assert meta.content_disposition == 'attachment; filename="b.txt"'
    assert meta.last_modified is None


# --- resolve_destination ---


def test_resolve_destination_existing_directory(tmp_path: Path) -> None:
    meta = ResponseMetadata(url_path="/files/data.csv")
    assert resolve_destination(tmp_path, meta) == tmp_path / "data.csv"


def test_resolve_destination_trailing_separator(tmp_path: Path) -> None:
    meta = ResponseMetadata(url_path="/files/data.csv")
    dest = str(tmp_path / "new") + "/"
    assert resolve_destination(dest, meta) == tmp_path / "new" / "data.csv"


def test_resolve_destination_explicit_file(tmp_path: Path) -> None:
    meta = ResponseMetadata(url_path="/files/data.csv")
    target = tmp_path / "renamed.csv"
    assert resolve_destination(target, meta) == target


# --- mkdirp ---


def test_mkdirp_creates_missing_parents(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b" / "file.txt"
    mkdirp(target)
    assert (tmp_path / "a" / "b").is_dir()
    assert not target.exists()


def test_mkdirp_applies_mode_to_every_created_level(tmp_path: Path) -> None:
    previous = os.umask(0)
    try:
        mkdirp(tmp_path / "a" / "b" / "c" / "file.txt")
    finally:
        os.umask(previous)
    for directory in ("a", "a/b", "a/b/c"):
        assert (tmp_path / directory).stat().st_mode & 0o777 == 0o755


def test_mkdirp_is_idempotent(tmp_path: Path) -> None:
    target = tmp_path / "a" / "file.txt"
    mkdirp(target)
    mkdirp(target)
    assert (tmp_path / "a").is_dir()


def test_mkdirp_parent_is_file_is_invariant_violation(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"x")
    with pytest.raises(AssertionError, match="not a directory"):
        mkdirp(blocker / "file.txt")


def test_mkdirp_other_stat_errors_propagate(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"x")
    with pytest.raises(NotADirectoryError):
        mkdirp(blocker / "sub" / "file.txt")


# --- set_last_modified ---


def test_set_last_modified_applies_header(tmp_path: Path) -> None:
    target = tmp_path / "f.bin"
    target.write_bytes(b"data")
    meta = ResponseMetadata(url_path="/f.bin", last_modified=LAST_MODIFIED)

    assert set_last_modified(meta, target) is True

    st = target.stat()
    assert st.st_mtime == LAST_MODIFIED_TS
    assert st.st_atime == LAST_MODIFIED_TS


@pytest.mark.parametrize("header", [None, "", "not a date", "32/13/2020"])
def test_set_last_modified_ignores_missing_or_bad_header(
    tmp_path: Path, header: str | None
) -> None:
    target = tmp_path / "f.bin"
    target.write_bytes(b"data")
    os.utime(target, (1_000_000, 1_000_000))
    meta = ResponseMetadata(url_path="/f.bin", last_modified=header)

    assert set_last_modified(meta, target) is False

    assert target.stat().st_mtime == 1_000_000


def test_set_last_modified_propagates_filesystem_errors(tmp_path: Path) -> None:
    meta = ResponseMetadata(url_path="/f.bin", last_modified=LAST_MODIFIED)
    with pytest.raises(FileNotFoundError):
        set_last_modified(meta, tmp_path / "missing.bin")
