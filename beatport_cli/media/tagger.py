"""
Handles writing store metadata as tags to downloaded FLAC and M4A files.
"""

import logging
import os
from typing import Any, Dict, List

from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.mp4 import MP4

from beatport_cli.utils.formatting import get_track_title

log = logging.getLogger(__name__)

# MP4 atoms for the common tag names
MP4_KEYS = {
    "title": "\xa9nam",
    "artist": "\xa9ART",
    "album": "\xa9alb",
    "genre": "\xa9gen",
    "date": "\xa9day",
    "label": "----:com.apple.iTunes:LABEL",
    "isrc": "----:com.apple.iTunes:ISRC",
    "key": "----:com.apple.iTunes:initialkey",
}


class Tagger:
    """Writes metadata tags to FLAC and M4A files."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def tag_file(self, file_path: str, track_meta: Dict[str, Any], ext: str) -> bool:
        """
        Tags `file_path` in place. A tagging failure is logged and reported
        through the return value, the audio itself stays usable.
        """
        if not self.enabled:
            return True
        try:
            if ext == "m4a":
                self._tag_mp4(file_path, track_meta)
            else:
                self._tag_flac(file_path, track_meta)
            return True
        except (MutagenError, OSError) as e:
            log.warning(
                f"[yellow]Failed to tag file '{os.path.basename(file_path)}': "
                f"{e}[/yellow]",
                exc_info=log.getEffectiveLevel() == logging.DEBUG,
            )
            return False

    def _get_common_tags(self, track_meta: Dict[str, Any]) -> Dict[str, Any]:
        """Gathers and formats the tags shared by both containers."""
        release = track_meta.get("release") or {}
        artists: List[str] = [
            a["name"] for a in track_meta.get("artists") or [] if a.get("name")
        ]
        remixers: List[str] = [
            a["name"] for a in track_meta.get("remixers") or [] if a.get("name")
        ]
        return {
            "title": get_track_title(track_meta),
            "artist": artists or ["Unknown Artist"],
            "remixer": remixers,
            "album": release.get("name"),
            "label": (release.get("label") or {}).get("name"),
            "genre": (track_meta.get("genre") or {}).get("name"),
            "date": track_meta.get("publish_date") or track_meta.get("new_release_date"),
            "tracknumber": track_meta.get("number"),
            "bpm": track_meta.get("bpm"),
            "key": (track_meta.get("key") or {}).get("name"),
            "isrc": track_meta.get("isrc"),
        }

    def _tag_flac(self, path: str, track_meta: Dict[str, Any]) -> None:
        audio = FLAC(path)
        for key, value in self._get_common_tags(track_meta).items():
            if not value:
                continue
            values = value if isinstance(value, list) else [value]
            audio[key.upper()] = [str(v) for v in values]
        audio.save()

    def _tag_mp4(self, path: str, track_meta: Dict[str, Any]) -> None:
        audio = MP4(path)
        if audio.tags is None:
            audio.add_tags()
        tags = self._get_common_tags(track_meta)

        for key, atom in MP4_KEYS.items():
            value = tags.get(key)
            if not value:
                continue
            if atom.startswith("----"):
                audio.tags[atom] = [str(value).encode("utf-8")]
            else:
                audio.tags[atom] = value if isinstance(value, list) else [str(value)]
        if isinstance(tags["tracknumber"], int):
            audio.tags["trkn"] = [(tags["tracknumber"], 0)]
        if tags["bpm"]:
            audio.tags["tmpo"] = [int(tags["bpm"])]
        audio.save()
