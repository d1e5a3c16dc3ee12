"""
Canonical video record and per-source results.

Every source normalizes its upstream payload into a :class:`VideoRecord`;
the JSON shape returned to the browser comes from :meth:`VideoRecord.to_dict`.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from quality import estimated_size_label, label_for_bitrate, normalize_bitrate

DEFAULT_TITLE = 'Twitter Video'
DEFAULT_AUTHOR = '@TwitterUser'
DEFAULT_AUTHOR_NAME = 'Twitter User'
DEFAULT_DURATION = '0:00'


@dataclass(frozen=True)
class QualityVariant:
    url: str
    bitrate: int
    quality: str

    @property
    def size(self) -> str:
        return estimated_size_label(self.bitrate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'bitrate': self.bitrate,
            'quality': self.quality,
            'size': self.size,
        }


@dataclass(frozen=True)
class VideoRecord:
    title: str
    author: str
    author_name: str
    thumbnail: str
    duration: str
    qualities: Tuple[QualityVariant, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'author': self.author,
            'authorName': self.author_name,
            'thumbnail': self.thumbnail,
            'duration': self.duration,
            'qualities': [variant.to_dict() for variant in self.qualities],
        }


def make_variant(url: str, bitrate: Any, quality: Optional[str] = None) -> QualityVariant:
    """Build a variant, labelling it from the bitrate unless a label is given."""
    bps = normalize_bitrate(bitrate)
    return QualityVariant(url=url, bitrate=bps, quality=quality or label_for_bitrate(bps))


def build_record(
    variants: List[QualityVariant],
    title: Optional[str] = None,
    screen_name: Optional[str] = None,
    author_name: Optional[str] = None,
    thumbnail: Optional[str] = None,
    duration: Optional[str] = None,
) -> Optional[VideoRecord]:
    """Assemble a record with fallback literals; ``None`` when there is nothing to download."""
    usable = [variant for variant in variants if variant.url]
    if not usable:
        return None
    usable.sort(key=lambda variant: variant.bitrate, reverse=True)

    handle = (screen_name or '').strip().lstrip('@')
    return VideoRecord(
        title=(title or '').strip() or DEFAULT_TITLE,
        author=f"@{handle}" if handle else DEFAULT_AUTHOR,
        author_name=(author_name or '').strip() or DEFAULT_AUTHOR_NAME,
        thumbnail=thumbnail or '',
        duration=duration or DEFAULT_DURATION,
        qualities=tuple(usable),
    )


@dataclass(frozen=True)
class Success:
    record: VideoRecord


@dataclass(frozen=True)
class NotFound:
    reason: str = 'no video found'


@dataclass(frozen=True)
class TransientFailure:
    reason: str


AdapterResult = Union[Success, NotFound, TransientFailure]
