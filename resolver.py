"""
Tweet URL parsing and the ordered source fallback chain.
"""

import logging
import re
from typing import List, Optional, Sequence

from config import ResolverConfig
from errors import InvalidTweetURLError, ResolutionExhausted
from models import Success, VideoRecord
from tweet_sources import TweetSource, build_sources

logger = logging.getLogger(__name__)

EXHAUSTED_MESSAGE = (
    'Unable to fetch video from all sources. '
    'Please verify the tweet contains a video and is publicly accessible.'
)

_TWEET_URL_RE = re.compile(
    r'^\s*(?:https?://)?(?:(?:www|mobile)\.)?(?:twitter|x)\.com/(?:[^/?#\s]+/)+status/(\d+)',
    re.IGNORECASE,
)


def extract_tweet_id(url: Optional[str]) -> Optional[str]:
    """Return the numeric status id from a twitter.com / x.com URL, else None."""
    if not url or not isinstance(url, str):
        return None
    match = _TWEET_URL_RE.match(url)
    if not match:
        return None
    return match.group(1)


def require_tweet_id(url: Optional[str]) -> str:
    """Like :func:`extract_tweet_id` but raises InvalidTweetURLError."""
    if not url:
        raise InvalidTweetURLError('URL is required')
    tweet_id = extract_tweet_id(url)
    if not tweet_id:
        raise InvalidTweetURLError('Invalid Twitter URL', reason=f"unrecognized url: {url}")
    return tweet_id


class ResolutionChain:
    """Try each source in order and return the first record with video variants.

    A source that fails, raises, or yields no variants is logged and skipped;
    only the generic exhaustion message reaches the caller.
    """

    def __init__(self, sources: Sequence[TweetSource]):
        self.sources: List[TweetSource] = list(sources)

    @classmethod
    def from_config(cls, config: ResolverConfig) -> 'ResolutionChain':
        return cls(build_sources(config))

    def resolve(self, tweet_id: str) -> VideoRecord:
        failures = []
        for source in self.sources:
            name = getattr(source, 'name', type(source).__name__)
            try:
                result = source.fetch_canonical(tweet_id)
            except Exception as exc:
                logger.exception("Source %s crashed for tweet %s", name, tweet_id)
                failures.append(f"{name}: {exc}")
                continue

            if isinstance(result, Success) and result.record.qualities:
                logger.info("Resolved tweet %s via %s (%d qualities)", tweet_id, name, len(result.record.qualities))
                return result.record

            reason = getattr(result, 'reason', None) or 'empty result'
            logger.warning("Source %s failed for tweet %s: %s", name, tweet_id, reason)
            failures.append(f"{name}: {reason}")

        raise ResolutionExhausted(EXHAUSTED_MESSAGE, reason='; '.join(failures))
