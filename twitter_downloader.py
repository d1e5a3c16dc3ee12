#!/usr/bin/env python3
"""
Twitter / X Video Downloader Tool
=================================

Resolves a tweet through the same source chain as the API server and saves
the chosen quality to disk.

Usage:
python twitter_downloader.py "https://x.com/user/status/1234567890"
python twitter_downloader.py "https://x.com/user/status/1234567890" -l
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from config import ResolverConfig
from errors import TwitterDownloaderError
from media_proxy import stream_media
from models import QualityVariant, VideoRecord
from resolver import ResolutionChain, extract_tweet_id


class TwitterDownloader:
    def __init__(self, output_dir="downloads", config: Optional[ResolverConfig] = None,
                 chain: Optional[ResolutionChain] = None):
        self.output_dir = Path(output_dir)
        self.config = config or ResolverConfig.from_env()
        self.chain = chain or ResolutionChain.from_config(self.config)

    def get_video_info(self, tweet_id: str) -> Optional[VideoRecord]:
        """Resolve a tweet without downloading"""
        try:
            return self.chain.resolve(tweet_id)
        except TwitterDownloaderError as e:
            print(f"Error getting video info: {e.message}")
            return None

    @staticmethod
    def pick_quality(record: VideoRecord, quality: Optional[str] = None) -> Optional[QualityVariant]:
        """Highest bitrate by default, otherwise the first variant with a matching label."""
        if not quality or quality == 'best':
            return record.qualities[0]
        for variant in record.qualities:
            if variant.quality.lower() == quality.lower():
                return variant
        return None

    def download_video(self, tweet_id: str, variant: QualityVariant) -> Optional[Path]:
        """Save one variant to the output directory"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / f"twitter-video-{tweet_id}-{variant.quality}.mp4"
        try:
            media = stream_media(variant.url, force_download=True, config=self.config)
            print(f"Downloading to: {target}")
            with open(target, 'wb') as fh:
                for chunk in media.iter_bytes():
                    fh.write(chunk)
        except (TwitterDownloaderError, OSError) as e:
            print(f"Error downloading video: {getattr(e, 'message', e)}")
            target.unlink(missing_ok=True)
            return None
        print("Download completed successfully!")
        return target

    def show_info(self, record: VideoRecord) -> None:
        print(f"\nTitle: {record.title}")
        print(f"Author: {record.author_name} ({record.author})")
        print(f"Duration: {record.duration}")
        if record.thumbnail:
            print(f"Thumbnail: {record.thumbnail}")

    def list_qualities(self, record: VideoRecord) -> None:
        self.show_info(record)
        print("\nAvailable Qualities:")
        for variant in record.qualities:
            print(f"  {variant.quality:>7} | {variant.bitrate:>9} bps | {variant.size}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Download videos from Twitter / X posts')
    parser.add_argument('url', help='Tweet URL (twitter.com or x.com)')
    parser.add_argument('-o', '--output', default='downloads',
                        help='Output directory (default: downloads)')
    parser.add_argument('-q', '--quality', default='best',
                        help='Quality label to download, e.g. 720p (default: best)')
    parser.add_argument('-l', '--list', action='store_true',
                        help='List available qualities without downloading')
    parser.add_argument('-i', '--info', action='store_true',
                        help='Show video information without downloading')

    args = parser.parse_args(argv)

    tweet_id = extract_tweet_id(args.url)
    if not tweet_id:
        print("Error: Please provide a valid Twitter / X status URL")
        sys.exit(1)

    downloader = TwitterDownloader(args.output)
    record = downloader.get_video_info(tweet_id)
    if not record:
        sys.exit(1)

    if args.list:
        downloader.list_qualities(record)
        return
    if args.info:
        downloader.show_info(record)
        return

    variant = downloader.pick_quality(record, args.quality)
    if not variant:
        available = ', '.join(v.quality for v in record.qualities)
        print(f"Error: quality {args.quality!r} not available (have: {available})")
        sys.exit(1)

    if not downloader.download_video(tweet_id, variant):
        sys.exit(1)


if __name__ == "__main__":
    main()
