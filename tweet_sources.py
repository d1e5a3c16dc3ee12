"""
Upstream sources that turn a tweet id into a VideoRecord.

Each HTTP source issues exactly one request against a fixed endpoint with the
browser-like headers that endpoint expects, then normalizes the payload.
Sources never raise: network errors, bad statuses and unusable payloads are
reported as NotFound / TransientFailure so the resolver can move on.
"""

import html
import logging
import random
import re
import string
from typing import Any, Dict, List, Optional

import requests
import yt_dlp

from config import ResolverConfig
from errors import UpstreamUnavailable
from models import (
    AdapterResult,
    NotFound,
    QualityVariant,
    Success,
    TransientFailure,
    VideoRecord,
    build_record,
    make_variant,
)
from quality import bitrate_from_dimensions, format_duration, label_from_media_url

logger = logging.getLogger(__name__)

SYNDICATION_URL = "https://cdn.syndication.twimg.com/tweet-result"
VXTWITTER_URL = "https://api.vxtwitter.com/Twitter/status/{tweet_id}"
FXTWITTER_URL = "https://api.fxtwitter.com/status/{tweet_id}"
TWITSAVE_URL = "https://twitsave.com/info"
STATUS_PAGE_URL = "https://twitter.com/i/status/{tweet_id}"

# Header templates; User-Agent is filled in from the config
SYNDICATION_HEADERS = {
    'Accept': 'application/json, text/plain, */*',
    'Accept-Language': 'en-US,en;q=0.9',
    'Referer': 'https://platform.twitter.com/',
    'Origin': 'https://platform.twitter.com',
}
JSON_API_HEADERS = {
    'Accept': 'application/json',
    'Accept-Language': 'en-US,en;q=0.9',
}
SCRAPE_HEADERS = {
    'Accept': '*/*',
    'Accept-Language': 'en-US,en;q=0.9',
}

RANK_BITRATE_STEP = 500_000

_TWIMG_MP4_RE = re.compile(r"""https://video\.twimg\.com/[^"'\s<>]+?\.mp4[^"'\s<>]*""")


def generate_token(length: int = 16) -> str:
    """Random token for the syndication endpoint, which accepts any value."""
    alphabet = string.ascii_lowercase + string.digits
    return ''.join(random.choice(alphabet) for _ in range(length))


def variants_from_urls(urls: List[str]) -> List[QualityVariant]:
    """Build variants from bare media URLs, guessing quality from the path.

    URLs without a resolution hint get a rank bitrate from their position so
    earlier entries still sort first.
    """
    variants = []
    total = len(urls)
    for index, url in enumerate(urls):
        bitrate = bitrate_from_dimensions(url)
        label = label_from_media_url(url)
        if not bitrate:
            bitrate = (total - index) * RANK_BITRATE_STEP
            label = label or ('HD' if index == 0 else 'SD')
        variants.append(make_variant(url, bitrate, label))
    return variants


def _mp4_variants(raw_variants: Any) -> List[QualityVariant]:
    variants = []
    for raw in raw_variants or []:
        if not isinstance(raw, dict):
            continue
        if raw.get('content_type') != 'video/mp4' or not raw.get('url'):
            continue
        variants.append(make_variant(raw['url'], raw.get('bitrate')))
    return variants


class TweetSource:
    """One upstream strategy. Subclasses set ``name`` and implement parsing."""

    name = 'source'
    method = 'GET'
    header_template: Dict[str, str] = {}

    def __init__(self, config: ResolverConfig):
        self.config = config

    def build_request(self, tweet_id: str) -> Dict[str, Any]:
        """Return ``url`` and optional ``params`` for the outbound request."""
        raise NotImplementedError

    def parse(self, response: requests.Response, tweet_id: str) -> Optional[VideoRecord]:
        raise NotImplementedError

    def headers(self) -> Dict[str, str]:
        headers = {'User-Agent': self.config.user_agent}
        headers.update(self.header_template)
        return headers

    def _send(self, tweet_id: str) -> requests.Response:
        request_args = self.build_request(tweet_id)
        try:
            return requests.request(
                self.method,
                request_args['url'],
                params=request_args.get('params'),
                headers=self.headers(),
                timeout=self.config.request_timeout,
                proxies=self.config.proxies(),
            )
        except requests.Timeout as exc:
            raise UpstreamUnavailable(
                f"{self.name} timed out after {self.config.request_timeout}s", reason=str(exc)
            ) from exc
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"{self.name} request failed: {exc}", reason=str(exc)) from exc

    def fetch_canonical(self, tweet_id: str) -> AdapterResult:
        try:
            response = self._send(tweet_id)
        except UpstreamUnavailable as exc:
            return TransientFailure(exc.message)

        if response.status_code == 404:
            return NotFound(f"{self.name} returned 404")
        if not 200 <= response.status_code < 300:
            return TransientFailure(f"{self.name} returned status {response.status_code}")

        try:
            record = self.parse(response, tweet_id)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            return NotFound(f"{self.name} payload could not be parsed: {exc}")

        if not record or not record.qualities:
            return NotFound(f"{self.name} found no video in tweet {tweet_id}")
        logger.debug("%s resolved %s with %d variants", self.name, tweet_id, len(record.qualities))
        return Success(record)


class SyndicationSource(TweetSource):
    """The embed widget's tweet-result endpoint."""

    name = 'syndication'
    header_template = SYNDICATION_HEADERS

    def build_request(self, tweet_id: str) -> Dict[str, Any]:
        return {
            'url': SYNDICATION_URL,
            'params': {'id': tweet_id, 'lang': 'en', 'token': generate_token()},
        }

    def parse(self, response: requests.Response, tweet_id: str) -> Optional[VideoRecord]:
        data = response.json()
        if not data or not data.get('mediaDetails'):
            return None

        media = next(
            (m for m in data['mediaDetails'] if m.get('type') in ('video', 'animated_gif')),
            None,
        )
        if not media or not media.get('video_info'):
            return None

        video_info = media['video_info']
        user = data.get('user') or {}
        return build_record(
            _mp4_variants(video_info.get('variants')),
            title=data.get('text'),
            screen_name=user.get('screen_name'),
            author_name=user.get('name'),
            thumbnail=media.get('media_url_https'),
            duration=format_duration(video_info.get('duration_millis')),
        )


class VxTwitterSource(TweetSource):
    """api.vxtwitter.com; exposes a single MP4 URL per video without bitrates."""

    name = 'vxtwitter'
    header_template = JSON_API_HEADERS

    def build_request(self, tweet_id: str) -> Dict[str, Any]:
        return {'url': VXTWITTER_URL.format(tweet_id=tweet_id)}

    def parse(self, response: requests.Response, tweet_id: str) -> Optional[VideoRecord]:
        data = response.json()
        media = next(
            (m for m in data.get('media_extended') or [] if m.get('type') in ('video', 'gif') and m.get('url')),
            None,
        )
        if not media:
            return None

        return build_record(
            variants_from_urls([media['url']]),
            title=data.get('text'),
            screen_name=data.get('user_screen_name'),
            author_name=data.get('user_name'),
            thumbnail=media.get('thumbnail_url'),
            duration=format_duration(media.get('duration_millis')),
        )


class FxTwitterSource(TweetSource):
    """api.fxtwitter.com status API."""

    name = 'fxtwitter'
    header_template = JSON_API_HEADERS

    def build_request(self, tweet_id: str) -> Dict[str, Any]:
        return {'url': FXTWITTER_URL.format(tweet_id=tweet_id)}

    def parse(self, response: requests.Response, tweet_id: str) -> Optional[VideoRecord]:
        tweet = (response.json() or {}).get('tweet') or {}
        videos = (tweet.get('media') or {}).get('videos') or []
        video = next((v for v in videos if v.get('url') or v.get('variants')), None)
        if not video:
            return None

        variants = _mp4_variants(video.get('variants'))
        if not variants and video.get('url'):
            variants = variants_from_urls([video['url']])

        duration_seconds = video.get('duration') or 0
        author = tweet.get('author') or {}
        return build_record(
            variants,
            title=tweet.get('text'),
            screen_name=author.get('screen_name'),
            author_name=author.get('name'),
            thumbnail=video.get('thumbnail_url'),
            duration=format_duration(float(duration_seconds) * 1000),
        )


class TwitsaveSource(TweetSource):
    """Scrapes twimg MP4 links out of twitsave's HTML page.

    Quality is guessed from resolution hints in the URL path, so labels are
    approximate.
    """

    name = 'twitsave'
    header_template = SCRAPE_HEADERS

    def build_request(self, tweet_id: str) -> Dict[str, Any]:
        return {
            'url': TWITSAVE_URL,
            'params': {'url': STATUS_PAGE_URL.format(tweet_id=tweet_id)},
        }

    def parse(self, response: requests.Response, tweet_id: str) -> Optional[VideoRecord]:
        page = response.text
        seen = []
        for match in _TWIMG_MP4_RE.findall(page):
            url = html.unescape(match)
            if url not in seen:
                seen.append(url)
        if not seen:
            return None
        return build_record(variants_from_urls(seen))


class YtDlpSource(TweetSource):
    """Last resort: let yt-dlp's twitter extractor resolve the status page.

    Unlike the other sources this may issue several requests (guest token,
    GraphQL, syndication). ``socket_timeout`` bounds each socket operation,
    not the whole extraction.
    """

    name = 'ytdlp'

    def _build_ydl_opts(self) -> Dict[str, Any]:
        opts: Dict[str, Any] = {
            'quiet': True,
            'no_warnings': True,
            'noplaylist': True,
            'skip_download': True,
            'socket_timeout': self.config.request_timeout,
            'http_headers': {
                'User-Agent': self.config.user_agent,
                'Accept-Language': 'en-US,en;q=0.9',
            },
        }
        if self.config.proxy:
            opts['proxy'] = self.config.proxy
        return opts

    def fetch_canonical(self, tweet_id: str) -> AdapterResult:
        url = STATUS_PAGE_URL.format(tweet_id=tweet_id)
        try:
            with yt_dlp.YoutubeDL(self._build_ydl_opts()) as ydl:
                info = ydl.extract_info(url, download=False)
        except Exception as exc:
            return TransientFailure(f"{self.name} extraction failed: {exc}")

        if not info:
            return NotFound(f"{self.name} returned no info")
        # Multi-video tweets come back as a playlist
        if info.get('entries'):
            info = next((entry for entry in info['entries'] if entry), {})

        record = self.parse_info(info)
        if not record:
            return NotFound(f"{self.name} found no progressive mp4 formats")
        return Success(record)

    def parse_info(self, info: Dict[str, Any]) -> Optional[VideoRecord]:
        variants = []
        for fmt in info.get('formats') or []:
            if not fmt.get('url') or fmt.get('ext') != 'mp4':
                continue
            if fmt.get('protocol') not in ('http', 'https') or fmt.get('vcodec') == 'none':
                continue
            variants.append(make_variant(fmt['url'], (fmt.get('tbr') or 0) * 1000))
        if not variants and info.get('url') and info.get('ext') == 'mp4':
            variants = variants_from_urls([info['url']])

        duration = info.get('duration')
        return build_record(
            variants,
            title=info.get('description') or info.get('title'),
            screen_name=info.get('uploader_id'),
            author_name=info.get('uploader'),
            thumbnail=info.get('thumbnail'),
            duration=format_duration(float(duration) * 1000) if duration else None,
        )


SOURCE_CLASSES = {
    cls.name: cls
    for cls in (SyndicationSource, VxTwitterSource, FxTwitterSource, TwitsaveSource, YtDlpSource)
}


def build_sources(config: ResolverConfig) -> List[TweetSource]:
    """Instantiate sources in the configured priority order."""
    return [SOURCE_CLASSES[name](config) for name in config.source_order if name in SOURCE_CLASSES]
