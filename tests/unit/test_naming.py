"""Unit tests for recording file naming."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from scrollcap.browser.naming import (
    MAX_NAME_LENGTH,
    artifact_path,
    artifact_timestamp,
    recording_dir,
    sanitize_filename,
    url_slug,
)

NOW = datetime(2024, 5, 1, 9, 30, 15, 250000, tzinfo=timezone.utc)


class TestSanitize:
    def test_forbidden_characters_replaced(self) -> None:
        assert sanitize_filename('a/b\\c?d%e*f:g|h"i<j>k') == "a_b_c_d_e_f_g_h_i_j_k"

    def test_safe_characters_kept(self) -> None:
        assert sanitize_filename("example.com_path-1") == "example.com_path-1"

    def test_length_capped(self) -> None:
        assert len(sanitize_filename("x" * 500)) == MAX_NAME_LENGTH


class TestSlug:
    def test_scheme_stripped(self) -> None:
        assert url_slug("https://example.com/path") == "example.com_path"
        assert url_slug("http://example.com") == "example.com"

    def test_query_string_sanitized(self) -> None:
        assert url_slug("https://example.com/a?b=c") == "example.com_a_b=c"


class TestTimestamp:
    def test_format(self) -> None:
        assert artifact_timestamp(NOW) == "2024-05-01T09-30-15-250Z"

    def test_converted_to_utc(self) -> None:
        local = NOW.astimezone(timezone(timedelta(hours=2)))
        assert artifact_timestamp(local) == "2024-05-01T09-30-15-250Z"


class TestArtifactPath:
    def test_layout(self, tmp_path: Path) -> None:
        path = artifact_path(tmp_path, "https://example.com/path", NOW)
        assert path == tmp_path / "example.com_path" / "2024-05-01T09-30-15-250Z__example.com_path.webm"

    def test_directory_matches_recording_dir(self, tmp_path: Path) -> None:
        url = "https://example.com/path"
        assert artifact_path(tmp_path, url, NOW).parent == recording_dir(tmp_path, url)

    def test_deterministic(self, tmp_path: Path) -> None:
        url = "https://example.com/path"
        assert artifact_path(tmp_path, url, NOW) == artifact_path(tmp_path, url, NOW)

    def test_long_url_keeps_webm_suffix(self, tmp_path: Path) -> None:
        path = artifact_path(tmp_path, "https://example.com/" + "a" * 300, NOW)
        assert path.suffix == ".webm"
        assert len(path.name) <= MAX_NAME_LENGTH
