"""
Runtime configuration, read once from the environment at startup.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

DEFAULT_PORT = 3000
DEFAULT_REQUEST_TIMEOUT = 15.0

# Priority order used when TWDL_SOURCES is not set
DEFAULT_SOURCE_ORDER: Tuple[str, ...] = ('syndication', 'vxtwitter', 'fxtwitter', 'twitsave', 'ytdlp')

BROWSER_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)


def _normalize_proxy_url(proxy: Optional[str]) -> Optional[str]:
    """Ensure proxies include a scheme so requests/yt-dlp understand them."""
    if not proxy:
        return None
    proxy = proxy.strip()
    if not proxy:
        return None
    if "://" not in proxy:
        proxy = f"http://{proxy}"
    return proxy


def _parse_source_order(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return DEFAULT_SOURCE_ORDER
    names = []
    for entry in raw.split(','):
        name = entry.strip().lower()
        if name in DEFAULT_SOURCE_ORDER and name not in names:
            names.append(name)
    return tuple(names) or DEFAULT_SOURCE_ORDER


def _parse_timeout(raw: Optional[str]) -> float:
    try:
        value = float(raw) if raw else DEFAULT_REQUEST_TIMEOUT
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT
    return value if value > 0 else DEFAULT_REQUEST_TIMEOUT


@dataclass(frozen=True)
class ResolverConfig:
    """Immutable settings shared by every request."""

    source_order: Tuple[str, ...] = DEFAULT_SOURCE_ORDER
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    proxy: Optional[str] = None
    user_agent: str = BROWSER_USER_AGENT
    port: int = DEFAULT_PORT
    referer: str = field(default='https://twitter.com/')

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'ResolverConfig':
        env = os.environ if environ is None else environ
        try:
            port = int(env.get('PORT') or DEFAULT_PORT)
        except ValueError:
            port = DEFAULT_PORT
        return cls(
            source_order=_parse_source_order(env.get('TWDL_SOURCES')),
            request_timeout=_parse_timeout(env.get('TWDL_REQUEST_TIMEOUT')),
            proxy=_normalize_proxy_url(env.get('TWDL_PROXY') or env.get('PROXY_URL')),
            user_agent=(env.get('TWDL_USER_AGENT') or '').strip() or BROWSER_USER_AGENT,
            port=port,
        )

    def proxies(self) -> Optional[Dict[str, str]]:
        """requests-friendly proxy dict"""
        if not self.proxy:
            return None
        return {
            'http': self.proxy,
            'https': self.proxy,
        }
