from __future__ import annotations

import re
import secrets
import string
import time
from datetime import datetime
from pathlib import PurePosixPath


_RAND_TOKEN = re.compile(r"\{rand:(\d+)\}")
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/|?*:"<>]+')


def _base_name(name: str) -> str:
    # Browsers on Windows may send the full client path.
    return name.replace("\\", "/").rsplit("/", 1)[-1]


def file_extension(name: str) -> str:
    """Extension of the last path element including the dot, case preserved ("" if none)."""
    return PurePosixPath(_base_name(name)).suffix


def safe_stem(name: str) -> str:
    stem = PurePosixPath(_base_name(name)).stem
    return _UNSAFE_FILENAME_CHARS.sub("", stem).strip()


def _random_digits(length: int) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))


def render_path_format(path_format: str, original_name: str, *, now_ns: int | None = None) -> str:
    """
    Expand a path template and append the original extension.

    Date tokens are replaced once each, in a fixed order: {yyyy} {mm} {dd} {hh} {ii} {ss}, then {time}
    (Unix time in nanoseconds). {filename} and {rand:N} are expanded afterwards. Nothing guarantees
    uniqueness: two renders within the same second of a template without {time}/{rand:N} are identical.
    """
    if now_ns is None:
        now_ns = time.time_ns()
    now = datetime.fromtimestamp(now_ns // 1_000_000_000)

    out = path_format
    for token, value in (
        ("{yyyy}", f"{now.year:04d}"),
        ("{mm}", f"{now.month:02d}"),
        ("{dd}", f"{now.day:02d}"),
        ("{hh}", f"{now.hour:02d}"),
        ("{ii}", f"{now.minute:02d}"),
        ("{ss}", f"{now.second:02d}"),
        ("{time}", str(now_ns)),
    ):
        out = out.replace(token, value, 1)

    out = out.replace("{filename}", safe_stem(original_name), 1)
    out = _RAND_TOKEN.sub(lambda m: _random_digits(int(m.group(1))), out, count=1)

    return out + file_extension(original_name)
