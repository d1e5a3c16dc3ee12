"""Shared pytest fixtures. No test touches the network; HTTP is mocked."""

from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

from config import ResolverConfig


def fake_response(
    status_code: int = 200,
    json_data: Any = None,
    text: str = '',
    headers: Optional[Dict[str, str]] = None,
    chunks=None,
) -> MagicMock:
    """Stand-in for ``requests.Response``."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = text
    response.headers = headers or {}
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    response.iter_content.return_value = iter(chunks or [])
    return response


@pytest.fixture
def config() -> ResolverConfig:
    return ResolverConfig(request_timeout=5.0)


@pytest.fixture
def syndication_payload() -> Dict[str, Any]:
    return {
        'text': 'Look at this',
        'user': {'screen_name': 'jack', 'name': 'Jack'},
        'mediaDetails': [
            {'type': 'photo', 'media_url_https': 'https://pbs.twimg.com/media/photo.jpg'},
            {
                'type': 'video',
                'media_url_https': 'https://pbs.twimg.com/thumb.jpg',
                'video_info': {
                    'duration_millis': 75500,
                    'variants': [
                        {'content_type': 'application/x-mpegURL',
                         'url': 'https://video.twimg.com/ext_tw_video/1/pu/pl/list.m3u8'},
                        {'content_type': 'video/mp4', 'bitrate': 632000,
                         'url': 'https://video.twimg.com/ext_tw_video/1/pu/vid/640x360/low.mp4'},
                        {'content_type': 'video/mp4', 'bitrate': 1280000,
                         'url': 'https://video.twimg.com/ext_tw_video/1/pu/vid/1280x720/high.mp4'},
                    ],
                },
            },
        ],
    }
