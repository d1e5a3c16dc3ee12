"""
Bitrate helpers: quality labels, rough size estimates and duration strings.
"""

import re
from typing import Any, Optional

# Highest threshold first
BITRATE_LABELS = [
    (2_000_000, '1080p'),
    (1_000_000, '720p'),
    (500_000, '480p'),
    (250_000, '360p'),
]

REFERENCE_CLIP_SECONDS = 10

# Filename tokens used by older twimg renditions
URL_QUALITY_TOKENS = [
    ('_full', '1080p'),
    ('_hd', '720p'),
    ('_sd', '480p'),
    ('_low', '360p'),
]

_DIMENSIONS_RE = re.compile(r'/(\d+)x(\d+)/')


def normalize_bitrate(value: Any) -> int:
    """Coerce upstream bitrate values to a non-negative int (0 when unknown)."""
    try:
        bitrate = int(value or 0)
    except (TypeError, ValueError):
        return 0
    return max(bitrate, 0)


def label_for_bitrate(bitrate: Any) -> str:
    """Map bits-per-second to a human quality label"""
    bps = normalize_bitrate(bitrate)
    if not bps:
        return 'Unknown'
    for threshold, label in BITRATE_LABELS:
        if bps >= threshold:
            return label
    return 'Low'


def estimated_size_label(bitrate: Any) -> str:
    """Estimate the size of a 10 second clip, e.g. ``~1.3 MB/10s``."""
    bps = normalize_bitrate(bitrate)
    if not bps:
        return 'Unknown'
    size_bytes = bps * REFERENCE_CLIP_SECONDS / 8
    if size_bytes >= 1_000_000:
        return f"~{size_bytes / 1_000_000:.1f} MB/{REFERENCE_CLIP_SECONDS}s"
    return f"~{size_bytes / 1000:.0f} KB/{REFERENCE_CLIP_SECONDS}s"


def format_duration(milliseconds: Any) -> str:
    """Return M:SS for a millisecond duration"""
    try:
        total_ms = int(milliseconds or 0)
    except (TypeError, ValueError):
        return '0:00'
    if total_ms <= 0:
        return '0:00'
    seconds = total_ms // 1000
    return f"{seconds // 60}:{seconds % 60:02d}"


def bitrate_from_dimensions(url: str) -> int:
    """Guess a bitrate from a ``/<width>x<height>/`` path segment, 0 if absent."""
    match = _DIMENSIONS_RE.search(url)
    if not match:
        return 0
    width = int(match.group(1))
    if width >= 1280:
        return 2_000_000
    if width >= 640:
        return 1_000_000
    return 500_000


def label_from_media_url(url: str) -> Optional[str]:
    """Infer a label from resolution hints in a media URL path."""
    bitrate = bitrate_from_dimensions(url)
    if bitrate:
        return label_for_bitrate(bitrate)
    lowered = url.lower()
    for token, label in URL_QUALITY_TOKENS:
        if token in lowered:
            return label
    return None
