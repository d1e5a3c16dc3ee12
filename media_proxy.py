"""
Pass-through proxy for twimg media so the browser never fetches the CDN directly.
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterator, Optional
from urllib.parse import urlparse

import requests

from config import ResolverConfig
from errors import InvalidMediaURLError, ProxyFetchFailure

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DOWNLOAD_ERROR = 'Failed to download video'


def download_filename(prefix: str = 'twitter-video') -> str:
    return f"{prefix}-{int(time.time() * 1000)}.mp4"


def validate_media_url(media_url: Optional[str]) -> str:
    if not media_url:
        raise InvalidMediaURLError('URL parameter is required')
    parsed = urlparse(media_url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise InvalidMediaURLError('URL parameter must be an http(s) URL')
    return media_url


@dataclass
class ProxiedMedia:
    """Upstream response headers plus a lazy byte iterator over its body."""

    headers: Dict[str, str]
    upstream: requests.Response

    def iter_bytes(self) -> Iterator[bytes]:
        try:
            for chunk in self.upstream.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    yield chunk
        finally:
            self.close()

    def close(self) -> None:
        self.upstream.close()


def stream_media(media_url: str, force_download: bool, config: ResolverConfig) -> ProxiedMedia:
    """Open ``media_url`` with spoofed headers and describe how to re-serve it.

    The body is not read here; callers stream :meth:`ProxiedMedia.iter_bytes`.
    """
    media_url = validate_media_url(media_url)
    headers = {
        'User-Agent': config.user_agent,
        'Referer': config.referer,
    }
    try:
        upstream = requests.get(
            media_url,
            headers=headers,
            stream=True,
            timeout=config.request_timeout,
            proxies=config.proxies(),
        )
    except requests.RequestException as exc:
        logger.warning("Media fetch failed for %s: %s", media_url, exc)
        raise ProxyFetchFailure(DOWNLOAD_ERROR, reason=str(exc)) from exc

    if not upstream.ok:
        upstream.close()
        logger.warning("Media fetch for %s returned status %s", media_url, upstream.status_code)
        raise ProxyFetchFailure(DOWNLOAD_ERROR, reason=f"upstream status {upstream.status_code}")

    response_headers = {
        'Content-Type': 'video/mp4',
        'Accept-Ranges': 'bytes',
    }
    content_length = upstream.headers.get('Content-Length')
    if content_length:
        response_headers['Content-Length'] = content_length
    if force_download:
        response_headers['Content-Disposition'] = f'attachment; filename="{download_filename()}"'

    return ProxiedMedia(headers=response_headers, upstream=upstream)
