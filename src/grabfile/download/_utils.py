"""Naming and filesystem helpers shared by the download paths."""
from __future__ import annotations

import logging
import os
import posixpath
import re
import stat
from datetime import timezone
from email.utils import decode_rfc2231, parsedate_to_datetime
from pathlib import Path
from urllib.parse import unquote_to_bytes

from grabfile.download._metadata import ResponseMetadata
from grabfile.errors import NoFilenameAvailable

logger = logging.getLogger(__name__)

# Mode for directories created by mkdirp (before umask).
DIR_MODE = 0o755


def sanitize_filename(candidate: str) -> str:
    """Reduce an untrusted string to a single safe base filename.

    The candidate is cleaned as if it were rooted at ``/`` and only its last
    component is kept, so ``..`` segments and absolute prefixes cannot escape
    the destination directory. Raises NoFilenameAvailable when nothing usable
    remains.
    """
    if not candidate or candidate.endswith("/") or "\x00" in candidate:
        raise NoFilenameAvailable(f"unusable filename candidate: {candidate!r}")

    name = os.path.basename(posixpath.normpath("/" + candidate))
    if name in ("", ".", "/"):
        raise NoFilenameAvailable(f"unusable filename candidate: {candidate!r}")
    return name


# RFC 2045 token: printable ASCII except space and tspecials.
_TOKEN = r"[!#$%&'*+\-.0-9A-Z^_`a-z{|}~]+"
_DISPOSITION_TYPE = re.compile(rf"\s*({_TOKEN})\s*")
_DISPOSITION_PARAM = re.compile(
    rf';\s*({_TOKEN})\s*=\s*(?:({_TOKEN})|"((?:[^"\\\r\n]|\\.)*)")\s*'
)
_QUOTED_PAIR = re.compile(r"\\(.)")


def _parse_disposition(value: str) -> dict[str, str] | None:
    """Parse a Content-Disposition value into lowercased parameters.

    Returns None unless the value is a disposition-type token followed by
    ``; name=token`` or ``; name="quoted-string"`` parameters with no
    repeated names. A single trailing ``;`` is tolerated.
    """
    m = _DISPOSITION_TYPE.match(value)
    if m is None:
        return None
    params: dict[str, str] = {}
    pos = m.end()
    while pos < len(value):
        pm = _DISPOSITION_PARAM.match(value, pos)
        if pm is None:
            if value[pos:].strip() == ";":
                break
            return None
        name = pm.group(1).lower()
        if name in params:
            return None
        token, quoted = pm.group(2), pm.group(3)
        params[name] = token if token is not None else _QUOTED_PAIR.sub(r"\1", quoted)
        pos = pm.end()
    return params


def _decode_ext_value(value: str) -> str | None:
    """Decode an RFC 2231 ``charset'language'percent-encoded`` value."""
    charset, _language, encoded = decode_rfc2231(value)
    if not charset:
        return None
    try:
        return unquote_to_bytes(encoded).decode(charset)
    except (LookupError, UnicodeError):
        return None


def _continued_filename(params: dict[str, str]) -> str | None:
    """Join RFC 2231 ``filename*0``, ``filename*1*``, ... continuations."""
    pieces: list[bytes] = []
    charset = None
    n = 0
    while True:
        encoded = params.get(f"filename*{n}*")
        plain = params.get(f"filename*{n}")
        if encoded is not None:
            if n == 0:
                charset, _language, encoded = decode_rfc2231(encoded)
                if not charset:
                    return None
            pieces.append(unquote_to_bytes(encoded))
        elif plain is not None:
            pieces.append(plain.encode("utf-8"))
        else:
            break
        n += 1
    if not pieces:
        return None
    try:
        return b"".join(pieces).decode(charset or "utf-8")
    except (LookupError, UnicodeError):
        return None


def _filename_from_disposition(value: str) -> str | None:
    """Return the ``filename`` parameter of a Content-Disposition value, if any.

    Malformed headers yield None. RFC 2231 forms (``filename*`` and
    continuations) take precedence over a plain ``filename``.
    """
    params = _parse_disposition(value)
    if params is None:
        return None
    if "filename*" in params:
        decoded = _decode_ext_value(params["filename*"])
        if decoded:
            return decoded
    continued = _continued_filename(params)
    if continued:
        return continued
    return params.get("filename") or None


def guess_filename(meta: ResponseMetadata) -> str:
    """Return a safe filename for a response.

    The Content-Disposition ``filename`` parameter takes precedence; the
    request URL path is the fallback.
    """
    if meta.content_disposition:
        hinted = _filename_from_disposition(meta.content_disposition)
        if hinted:
            try:
                return sanitize_filename(hinted)
            except NoFilenameAvailable:
                logger.debug(
                    "Ignoring unusable Content-Disposition filename %r", hinted
                )
    return sanitize_filename(meta.url_path)


def resolve_destination(dest: str | Path, meta: ResponseMetadata) -> Path:
    """Return the file path to write a response to.

    If ``dest`` is an existing directory, or is spelled with a trailing
    separator, the guessed filename is appended to it. Otherwise ``dest``
    names the file itself.
    """
    raw = os.fspath(dest)
    path = Path(raw)
    if raw.endswith(("/", os.sep)) or path.is_dir():
        return path / guess_filename(meta)
    return path


def _makedirs(path: Path) -> None:
    # Path.mkdir(parents=True) applies the mode to the leaf only.
    if path.is_dir():
        return
    if path.parent != path:
        _makedirs(path.parent)
    try:
        path.mkdir(mode=DIR_MODE)
    except FileExistsError:
        if not path.is_dir():
            raise


def mkdirp(path: str | Path) -> None:
    """Create every missing parent directory of the file ``path``."""
    parent = Path(path).parent
    try:
        st = parent.stat()
    except FileNotFoundError:
        logger.debug("Creating destination directory %s", parent)
        _makedirs(parent)
        return
    if not stat.S_ISDIR(st.st_mode):
        raise AssertionError(f"destination path is not a directory: {parent}")


def set_last_modified(meta: ResponseMetadata, path: str | Path) -> bool:
    """Apply the response's Last-Modified time to ``path``.

    Returns False without touching the file when the header is missing or is
    not a valid HTTP date. Errors from the filesystem propagate.
    """
    header = meta.last_modified
    if not header:
        return False
    try:
        lastmod = parsedate_to_datetime(header)
    except (TypeError, ValueError, IndexError):
        logger.debug("Ignoring unparsable Last-Modified header %r", header)
        return False
    # Naive results come from "-0000" zones; HTTP dates are always UTC.
    if lastmod.tzinfo is None:
        lastmod = lastmod.replace(tzinfo=timezone.utc)
    ts = lastmod.timestamp()
    os.utime(path, (ts, ts))
    return True
