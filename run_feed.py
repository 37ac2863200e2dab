#!/usr/bin/env python3
"""
CLI script to read feed posts from listing pages.

Two modes:
  Offline: pass saved HTML files, each is parsed as one listing page
  Live:    pass no files, the listing is fetched (front page or --subreddit)

Options come either from flags or from a listing path (--path), in the
shape the site itself uses: /r/[name]/[sort]?after=[id]. A path ending in
.json asks for JSON output; any other path prints a plain-text listing.
Without --path the output is always JSON, one entry per file (offline) or
a single feed (live).
"""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError
load_dotenv()

from feed_parser.config import load_settings
from feed_parser.exceptions import FeedParserError
from feed_parser.fetcher import Fetcher
from feed_parser.logger import setup_logger
from feed_parser.main import FeedParser
from feed_parser.options import FeedOptions, RoutedRequest, SortMethod, options_from_path
from feed_parser.schemas import Feed


def build_options(args, base_url: str) -> RoutedRequest:
    if args.path is not None:
        path, _, query = args.path.partition("?")
        return options_from_path(path or "/", query, base_url=base_url)

    sort_method = SortMethod.from_string(args.sort) if args.sort else SortMethod.DEFAULT
    options = FeedOptions(
        base_url=base_url,
        subreddit=args.subreddit,
        sort_method=sort_method,
        count=args.count,
        last_post_id=args.after,
    )
    return RoutedRequest(options=options, wants_json=True)


def format_feed(feed: Feed) -> str:
    """Plain-text listing: one line per post, then the next page link."""
    lines = []
    for post in feed.posts:
        lines.append(
            f"[{post.type}] {post.title} "
            f"({post.score} points, {post.comment_count} comments) {post.post_link}"
        )
    if feed.next_page_link:
        lines.append(f"next: {feed.next_page_link}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Extract feed posts from listing pages")
    parser.add_argument("files", nargs="*", help="Saved listing pages (omit to fetch live)")
    parser.add_argument("--subreddit", "-r", help="Subreddit to fetch (default: front page)")
    parser.add_argument("--sort", "-s", help="Sort method: hot, new, rising, controversial, top, gilded")
    parser.add_argument("--after", help="Fullname of the last post on the previous page")
    parser.add_argument("--count", type=int, default=0, help="Index of the first post")
    parser.add_argument("--path", "-p",
                        help="Listing path such as /r/python/top?after=t3_x "
                             "(overrides the flags above; a .json suffix selects JSON output)")
    parser.add_argument("--output", "-o", help="Output file")
    args = parser.parse_args()

    settings = load_settings()
    setup_logger(level=settings.log_level)

    try:
        routed = build_options(args, settings.base_url)
    except (FeedParserError, ValidationError) as e:
        print(f"✗ Invalid options: {e}", file=sys.stderr)
        sys.exit(2)
    options = routed.options

    with Fetcher(timeout=settings.timeout, user_agent=settings.user_agent) as fetcher:
        feed_parser = FeedParser(fetcher=fetcher)

        if args.files:
            results = []
            for filepath in args.files:
                path = Path(filepath)
                print(f"Parsing: {path.name}", file=sys.stderr)
                try:
                    feed = feed_parser.parse_file(path, options)
                except (FeedParserError, OSError) as e:
                    # One unreadable or unparsable file does not stop the run
                    results.append({
                        "file": path.name,
                        "status": "error",
                        "error": str(e)
                    })
                    print(f"  ✗ Error: {e}", file=sys.stderr)
                    continue

                results.append({
                    "file": path.name,
                    "status": "success",
                    "feed": feed
                })
                print(f"  ✓ {len(feed.posts)} posts", file=sys.stderr)

            if routed.wants_json:
                for result in results:
                    if "feed" in result:
                        result["feed"] = result["feed"].model_dump(mode="json", by_alias=True)
                # ensure_ascii=False keeps non-ASCII titles readable
                output = json.dumps(results, indent=2, ensure_ascii=False)
            else:
                sections = []
                for result in results:
                    body = format_feed(result["feed"]) if "feed" in result else f"error: {result['error']}"
                    sections.append(f"== {result['file']}\n{body}")
                output = "\n\n".join(sections)
        else:
            try:
                feed = feed_parser.feed(options)
            except FeedParserError as e:
                print(f"✗ {e.message}", file=sys.stderr)
                sys.exit(1)
            output = feed.to_json() if routed.wants_json else format_feed(feed)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"\nSaved to: {args.output}", file=sys.stderr)
    else:
        print(output)


if __name__ == "__main__":
    main()
