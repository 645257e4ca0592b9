"""
Utilities for handling file paths, templates, and URL parsing.
"""

import re
from pathlib import Path
from typing import Any, Dict, Optional

from pathvalidate import sanitize_filename, sanitize_filepath

from beatport_cli.models.catalog import CatalogURL, ItemKind, Store
from beatport_cli.utils.formatting import join_artist_names

_URL_PATTERN = re.compile(
    r"(?:^|//|\.)(?P<store>beatport|beatsource)\.com/"
    r"(?:[a-z]{2}(?:-[a-z]{2})?/)?"
    r"(?P<kind>track|release|chart|playlists/share|playlist)/"
    r"(?:[^/?#]+/)?(?P<id>\d+)"
)

_KIND_MAP = {
    "track": ItemKind.TRACK,
    "release": ItemKind.RELEASE,
    "chart": ItemKind.CHART,
    "playlist": ItemKind.PLAYLIST,
    "playlists/share": ItemKind.PLAYLIST,
}


def parse_catalog_url(url: str) -> Optional[CatalogURL]:
    """
    Parses a Beatport or Beatsource URL to extract the store, content type and ID.
    Handles locale prefixes and URLs with or without a slug.
    """
    match = _URL_PATTERN.search(url.strip())
    if not match:
        return None
    return CatalogURL(
        store=Store(match.group("store")),
        kind=_KIND_MAP[match.group("kind")],
        item_id=match.group("id"),
        url=url.strip(),
    )


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


class PathFormatter:
    """
    Formats an output path template string using track metadata.
    """

    def __init__(self, template: str) -> None:
        self.template = template

    def format_path(self, track_meta: Dict[str, Any], file_extension: str) -> Path:
        """
        Generates a final, sanitized file path from the template.
        """
        template_vars = self._get_template_vars(track_meta, file_extension)
        formatted_str = self._resolve_conditionals(self.template, template_vars)
        final_str = formatted_str.format(**template_vars)
        return Path(sanitize_filepath(final_str, platform="auto"))

    def _resolve_conditionals(
        self, template_str: str, variables: Dict[str, Any]
    ) -> str:
        pattern = re.compile(r"%\{\?(\w+),([^|]*?)\|([^}]*?)\}")

        def replacer(match: re.Match) -> str:
            key, true_val, false_val = match.groups()
            return true_val if variables.get(key) else false_val

        return pattern.sub(replacer, template_str)

    def _get_template_vars(self, track_meta: Dict[str, Any], ext: str) -> Dict[str, Any]:
        """Builds the variable dictionary for template formatting."""
        release = track_meta.get("release") or {}
        release_date = (
            track_meta.get("publish_date") or track_meta.get("new_release_date") or ""
        )
        number = track_meta.get("number")

        return {
            "id": str(track_meta.get("id", "")),
            "name": sanitize_filename(track_meta.get("name") or "Unknown Title"),
            "mix_name": sanitize_filename(track_meta.get("mix_name") or ""),
            "artists": sanitize_filename(
                join_artist_names(track_meta.get("artists")) or "Unknown Artist"
            ),
            "remixers": sanitize_filename(join_artist_names(track_meta.get("remixers"))),
            "number": f"{number:02}" if isinstance(number, int) else "",
            "release": sanitize_filename(release.get("name") or "Unknown Release"),
            "release_id": str(release.get("id", "")),
            "label": sanitize_filename((release.get("label") or {}).get("name") or ""),
            "year": str(release_date)[:4],
            "genre": sanitize_filename((track_meta.get("genre") or {}).get("name") or ""),
            "bpm": str(track_meta.get("bpm") or ""),
            "key": sanitize_filename((track_meta.get("key") or {}).get("name") or ""),
            "isrc": track_meta.get("isrc") or "",
            "ext": ext,
        }
