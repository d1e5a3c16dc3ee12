#!/usr/bin/env python3
"""
Twitter Video Downloader API
Resolves tweet URLs to MP4 variants and proxies the media bytes.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, Response, jsonify, request, stream_with_context
from flask_cors import CORS

from config import ResolverConfig
from errors import InvalidMediaURLError, InvalidTweetURLError, ProxyFetchFailure, ResolutionExhausted
from media_proxy import stream_media
from resolver import ResolutionChain, require_tweet_id

logger = logging.getLogger(__name__)


def create_app(config: Optional[ResolverConfig] = None, chain: Optional[ResolutionChain] = None) -> Flask:
    """Build the Flask app; tests inject their own config and chain."""
    config = config or ResolverConfig.from_env()
    chain = chain or ResolutionChain.from_config(config)

    app = Flask(__name__)
    app.config['RESOLVER_CONFIG'] = config
    CORS(app)

    @app.route('/api/video', methods=['POST'])
    def get_video():
        """
        Resolve a tweet to its downloadable qualities

        Request body:
        {
            "url": "https://x.com/user/status/1234567890"
        }
        """
        try:
            data = request.get_json(silent=True) or {}
            tweet_id = require_tweet_id(data.get('url') if isinstance(data, dict) else None)
            record = chain.resolve(tweet_id)
            return jsonify({'success': True, 'data': record.to_dict()})

        except InvalidTweetURLError as e:
            return jsonify({'success': False, 'error': e.message}), 400
        except ResolutionExhausted as e:
            logger.warning("Resolution exhausted: %s", e.reason)
            return jsonify({'success': False, 'error': e.message}), 500
        except Exception:
            logger.exception("API error while resolving video")
            return jsonify({'success': False, 'error': 'Internal server error'}), 500

    @app.route('/api/download', methods=['GET'])
    def download():
        """Stream a media URL through this server; ``preview=true`` plays inline."""
        media_url = request.args.get('url')
        preview = request.args.get('preview') == 'true'
        try:
            media = stream_media(media_url, force_download=not preview, config=config)
        except InvalidMediaURLError as e:
            return jsonify({'error': e.message}), 400
        except ProxyFetchFailure as e:
            return jsonify({'error': e.message}), 500
        except Exception:
            logger.exception("Download error")
            return jsonify({'error': 'Failed to download video'}), 500

        response = Response(stream_with_context(media.iter_bytes()), headers=media.headers)
        response.call_on_close(media.close)
        return response

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        })

    @app.route('/', methods=['GET'])
    def index():
        return jsonify({
            'service': 'Twitter Video Downloader',
            'sources': list(config.source_order),
            'endpoints': {
                'POST /api/video': 'Resolve a tweet URL to video qualities',
                'GET /api/download?url=<media url>&preview=true': 'Stream a video through the proxy',
                'GET /api/health': 'Health check'
            }
        })

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500

    return app


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# WSGI entry point, e.g. ``gunicorn app:app``
app = create_app()


if __name__ == '__main__':
    configure_logging()
    config = app.config['RESOLVER_CONFIG']
    logger.info("Twitter video server running on http://localhost:%s", config.port)
    logger.info("Source order: %s", ', '.join(config.source_order))
    app.run(host='0.0.0.0', port=config.port, threaded=True)
