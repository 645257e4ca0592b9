"""
Helper functions for formatting data into human-readable strings.
"""

from typing import Any


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 34m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def join_artist_names(artists: list[dict[str, Any]] | None) -> str:
    """Joins the names of a store artist list ('A, B')."""
    if not artists:
        return ""
    return ", ".join(a["name"] for a in artists if a.get("name"))


def get_track_title(track_meta: dict[str, Any]) -> str:
    """Constructs a full track title including its mix name, if available."""
    title = track_meta.get("name", "Unknown Title")
    if (mix := track_meta.get("mix_name")) and mix.lower() not in title.lower():
        title = f"{title} ({mix})"
    return title


def get_display_title(track_meta: dict[str, Any]) -> str:
    """'Artists - Title (Mix)' for progress bars and log lines."""
    artists = join_artist_names(track_meta.get("artists")) or "Unknown Artist"
    return f"{artists} - {get_track_title(track_meta)}"
