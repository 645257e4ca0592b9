"""Tests for tag writing."""

from __future__ import annotations

from pathlib import Path

from beatport_cli.media import Tagger


def test_disabled_tagger_leaves_file_untouched(tmp_path: Path) -> None:
    audio = tmp_path / "song.flac"
    audio.write_bytes(b"not really audio")

    assert Tagger(enabled=False).tag_file(str(audio), {"name": "Song"}, "flac")
    assert audio.read_bytes() == b"not really audio"


def test_unreadable_file_is_reported_not_raised(tmp_path: Path) -> None:
    audio = tmp_path / "song.flac"
    audio.write_bytes(b"not really audio")

    assert not Tagger().tag_file(str(audio), {"name": "Song"}, "flac")
