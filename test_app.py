"""Endpoint tests using Flask's test client; upstream HTTP is mocked."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from flask import Flask

from app import create_app
from conftest import fake_response
from errors import InvalidMediaURLError
from media_proxy import stream_media
from models import NotFound, Success, build_record, make_variant
from resolver import EXHAUSTED_MESSAGE, ResolutionChain


@pytest.fixture
def client(config):
    return create_app(config).test_client()


def _chain_with(*results) -> ResolutionChain:
    sources = []
    for index, result in enumerate(results):
        source = MagicMock()
        source.name = f"source{index}"
        source.fetch_canonical.return_value = result
        sources.append(source)
    return ResolutionChain(sources)


# ---------------------------------------------------------------------------
# POST /api/video
# ---------------------------------------------------------------------------

def test_video_end_to_end_with_first_source(client, syndication_payload):
    with patch('tweet_sources.requests.request', return_value=fake_response(json_data=syndication_payload)) as req:
        response = client.post('/api/video', json={'url': 'https://x.com/u/status/123'})

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    data = body['data']
    assert data['author'] == '@jack'
    assert data['authorName'] == 'Jack'
    assert data['duration'] == '1:15'
    assert [q['quality'] for q in data['qualities']] == ['720p', '480p']
    assert [q['bitrate'] for q in data['qualities']] == [1_280_000, 632_000]
    assert data['qualities'][0]['size'] == '~1.6 MB/10s'
    assert data['qualities'][1]['url'].endswith('low.mp4')
    # syndication answered, nothing else was asked
    assert req.call_count == 1


def test_video_requires_url(client):
    response = client.post('/api/video', json={})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'URL is required'


def test_video_rejects_non_json_body(client):
    response = client.post('/api/video', data='url=nope', content_type='text/plain')
    assert response.status_code == 400


def test_video_rejects_foreign_url(client):
    response = client.post('/api/video', json={'url': 'https://youtube.com/watch?v=1'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid Twitter URL'


def test_video_exhausted_returns_generic_500(config):
    chain = _chain_with(NotFound('upstream said: private account'), NotFound('twitsave markup changed'))
    client = create_app(config, chain=chain).test_client()

    response = client.post('/api/video', json={'url': 'https://twitter.com/a/status/9'})

    assert response.status_code == 500
    body = response.get_json()
    assert body == {'success': False, 'error': EXHAUSTED_MESSAGE}


def test_video_uses_injected_chain(config):
    record = build_record([make_variant('https://video.twimg.com/a.mp4', 2_500_000)], title='hello')
    client = create_app(config, chain=_chain_with(Success(record))).test_client()

    response = client.post('/api/video', json={'url': 'x.com/a/status/9'})

    assert response.get_json()['data']['qualities'][0]['quality'] == '1080p'


# ---------------------------------------------------------------------------
# GET /api/download
# ---------------------------------------------------------------------------

MEDIA_URL = 'https://video.twimg.com/ext_tw_video/1/pu/vid/1280x720/high.mp4'


def test_download_sets_attachment_and_streams(client):
    upstream = fake_response(headers={'Content-Length': '6'}, chunks=[b'abc', b'', b'def'])
    with patch('media_proxy.requests.get', return_value=upstream) as get:
        response = client.get('/api/download', query_string={'url': MEDIA_URL})

    assert response.status_code == 200
    assert response.data == b'abcdef'
    assert response.headers['Content-Type'] == 'video/mp4'
    assert response.headers['Accept-Ranges'] == 'bytes'
    assert response.headers['Content-Length'] == '6'
    disposition = response.headers['Content-Disposition']
    assert disposition.startswith('attachment; filename="twitter-video-')
    assert disposition.endswith('.mp4"')

    kwargs = get.call_args.kwargs
    assert kwargs['stream'] is True
    assert kwargs['headers']['Referer'] == 'https://twitter.com/'
    assert 'Mozilla' in kwargs['headers']['User-Agent']
    assert kwargs['timeout'] == 5.0
    upstream.close.assert_called()


def test_download_preview_is_inline(client):
    upstream = fake_response(chunks=[b'data'])
    with patch('media_proxy.requests.get', return_value=upstream):
        response = client.get('/api/download', query_string={'url': MEDIA_URL, 'preview': 'true'})

    assert response.status_code == 200
    assert 'Content-Disposition' not in response.headers
    assert response.headers['Content-Type'] == 'video/mp4'


def test_download_requires_url(client):
    response = client.get('/api/download')
    assert response.status_code == 400
    assert response.get_json() == {'error': 'URL parameter is required'}


def test_download_rejects_non_http_urls(client):
    response = client.get('/api/download', query_string={'url': 'file:///etc/passwd'})
    assert response.status_code == 400


def test_download_upstream_error_status(client):
    upstream = fake_response(status_code=403)
    with patch('media_proxy.requests.get', return_value=upstream):
        response = client.get('/api/download', query_string={'url': MEDIA_URL})

    assert response.status_code == 500
    assert response.get_json() == {'error': 'Failed to download video'}
    upstream.close.assert_called_once()


def test_download_network_error(client):
    with patch('media_proxy.requests.get', side_effect=requests.ConnectTimeout('slow cdn')):
        response = client.get('/api/download', query_string={'url': MEDIA_URL})

    assert response.status_code == 500
    assert response.get_json() == {'error': 'Failed to download video'}


# ---------------------------------------------------------------------------
# Misc routes
# ---------------------------------------------------------------------------

def test_health(client):
    response = client.get('/api/health')
    body = response.get_json()
    assert response.status_code == 200
    assert body['status'] == 'ok'
    assert body['timestamp'].endswith('Z')


def test_index_lists_sources(client):
    body = client.get('/').get_json()
    assert body['sources'] == ['syndication', 'vxtwitter', 'fxtwitter', 'twitsave', 'ytdlp']


def test_unknown_route(client):
    response = client.get('/api/nope')
    assert response.status_code == 404
    assert response.get_json()['success'] is False


# ---------------------------------------------------------------------------
# Cross-origin access and entry points
# ---------------------------------------------------------------------------

def test_cross_origin_preflight_is_allowed(client):
    response = client.options('/api/video', headers={
        'Origin': 'http://other.example',
        'Access-Control-Request-Method': 'POST',
    })

    assert response.status_code == 200
    assert response.headers['Access-Control-Allow-Origin'] in ('*', 'http://other.example')


def test_cross_origin_download_response(client):
    with patch('media_proxy.requests.get', return_value=fake_response(chunks=[b'x'])):
        response = client.get(
            '/api/download',
            query_string={'url': MEDIA_URL, 'preview': 'true'},
            headers={'Origin': 'http://other.example'},
        )

    assert response.headers['Access-Control-Allow-Origin'] in ('*', 'http://other.example')


def test_module_level_wsgi_app():
    import app as app_module

    assert isinstance(app_module.app, Flask)
    assert app_module.app.test_client().get('/api/health').status_code == 200


@pytest.mark.parametrize('media_url', [None, '', 'file:///etc/passwd', 'video.twimg.com/a.mp4'])
def test_stream_media_rejects_bad_urls(config, media_url):
    with patch('media_proxy.requests.get') as get:
        with pytest.raises(InvalidMediaURLError):
            stream_media(media_url, force_download=True, config=config)
    get.assert_not_called()
