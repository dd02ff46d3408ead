#!/usr/bin/env python3
"""
Command-line script to convert a WeChat article to Markdown.

SOURCE is an article URL or a saved HTML page. The result is written as
<title>.md, or as <title>.zip when images were saved as separate files.

Usage:
    python run_converter.py https://mp.weixin.qq.com/s/xxxx
    python run_converter.py https://mp.weixin.qq.com/s/xxxx --image save
    python run_converter.py page.html --image url -o article.md
    python run_converter.py https://mp.weixin.qq.com/s/xxxx --proxy 127.0.0.1:8080
"""

import argparse
import logging
import sys
from pathlib import Path

# Load .env file automatically (WECHATMP2MD_PROXY, WECHATMP2MD_TIMEOUT)
from dotenv import load_dotenv
load_dotenv()

from wechatmp2md.config import FetchConfig
from wechatmp2md.exceptions import DocumentParseError
from wechatmp2md.formatter import format_article, output_filename
from wechatmp2md.logger import setup_logger
from wechatmp2md.main import WechatMPConverter
from wechatmp2md.packager import build_zip
from wechatmp2md.schemas import image_policy_from_arg


def main():
    parser = argparse.ArgumentParser(
        description="Convert a WeChat Official Account article to Markdown"
    )
    parser.add_argument("source", help="Article URL or local HTML file")
    parser.add_argument(
        "--image", "-i",
        default="base64",
        help="Image handling: url / save / base64 (default; unknown values mean base64)"
    )
    parser.add_argument("--proxy", "-p", help="HTTP proxy as ip:port")
    parser.add_argument("--output", "-o", help="Output file (default: <title>.md or <title>.zip)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    if args.verbose:
        setup_logger(level=logging.DEBUG)

    converter = WechatMPConverter(
        image_policy=image_policy_from_arg(args.image),
        config=FetchConfig.from_env(proxy=args.proxy),
    )

    is_url = args.source.startswith(("http://", "https://"))
    try:
        if is_url:
            article = converter.parse_url(args.source)
        else:
            article = converter.parse_file(args.source)
    except (DocumentParseError, OSError) as e:
        print(f"✗ Error: {e}")
        sys.exit(1)

    if is_url and article.is_empty():
        print(f"✗ Could not fetch {args.source}")
        sys.exit(1)

    markdown, images = format_article(article)
    title = article.title_text

    if images:
        output = Path(args.output or output_filename(title, "zip"))
        output.write_bytes(build_zip(images, markdown, title))
        print(f"✓ {title}: {len(images)} images → {output}")
    else:
        output = Path(args.output or output_filename(title, "md"))
        output.write_text(markdown, encoding="utf-8")
        print(f"✓ {title} → {output}")


if __name__ == "__main__":
    main()
