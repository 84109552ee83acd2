"""Deterministic output names for finished recordings.

Layout: ``<output_root>/<slug>/<timestamp>__<slug>.webm`` where ``slug`` is the
URL without its scheme, with filesystem-hostile characters replaced.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

_FORBIDDEN = re.compile(r'[/\\?%*:|"<>]')
_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
MAX_NAME_LENGTH = 120
VIDEO_SUFFIX = ".webm"


def sanitize_filename(value: str) -> str:
    """Replace ``/ \\ ? % * : | " < >`` with ``_`` and cap the length."""
    return _FORBIDDEN.sub("_", value)[:MAX_NAME_LENGTH]


def url_slug(url: str) -> str:
    return sanitize_filename(_SCHEME.sub("", url))


def artifact_timestamp(now: datetime) -> str:
    """ISO-8601 UTC with milliseconds, ``:`` and ``.`` swapped for ``-``.

    >>> artifact_timestamp(datetime(2024, 5, 1, 9, 30, 15, 250000, tzinfo=timezone.utc))
    '2024-05-01T09-30-15-250Z'
    """
    now = now.astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def recording_dir(output_root: Path, url: str) -> Path:
    return Path(output_root) / url_slug(url)


def artifact_path(output_root: Path, url: str, now: datetime) -> Path:
    """Final path for the recording of *url* finished at *now*."""
    stem = sanitize_filename(f"{artifact_timestamp(now)}__{url_slug(url)}")
    # Truncate the stem, not the suffix, so long URLs still end in .webm.
    stem = stem[: MAX_NAME_LENGTH - len(VIDEO_SUFFIX)]
    return recording_dir(output_root, url) / f"{stem}{VIDEO_SUFFIX}"
