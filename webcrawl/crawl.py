"""CLI entrypoint: crawl a site and stream one JSON line per retrieved resource."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any, TextIO

if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from webcrawl.crawler import CrawlConfig, Pipeline, load_config


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a website politely and stream retrieved resources as JSON lines.",
    )

    parser.add_argument("--start_url", type=str, default=None, help="URL to start crawling from.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write resource JSON lines here instead of stdout.",
    )
    parser.add_argument(
        "--log_file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )

    parser.add_argument("--user_agent", type=str, default=None)
    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument("--max_parallel_tasks", type=int, default=None)
    parser.add_argument("--throttle_ms", type=int, default=None)
    parser.add_argument("--delay_ms", type=int, default=None)
    parser.add_argument("--timeout_seconds", type=float, default=None)

    parser.add_argument(
        "--allow_domain",
        action="append",
        default=[],
        help="Only follow links on this domain (repeatable).",
    )
    parser.add_argument(
        "--deny_domain",
        action="append",
        default=[],
        help="Never follow links on this domain (repeatable).",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Regex; matching links are not followed (repeatable).",
    )

    parser.add_argument(
        "--ignore_robots",
        dest="ignore_robots_txt",
        action="store_true",
        default=None,
        help="Ignore robots.txt.",
    )
    parser.add_argument(
        "--no_sitemap",
        dest="include_sitemap",
        action="store_false",
        default=None,
        help="Do not seed the crawl from sitemap.xml.",
    )
    parser.add_argument(
        "--no_follow_redirects",
        dest="follow_redirects",
        action="store_false",
        default=None,
    )
    parser.add_argument(
        "--no_child_only",
        dest="restrict_to_child_urls",
        action="store_false",
        default=None,
        help="Follow links outside the start URL's path.",
    )
    parser.add_argument(
        "--headless",
        dest="use_headless_browser",
        action="store_true",
        default=None,
        help="Render navigable pages with a headless browser.",
    )

    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON to stderr after the run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


_FLAG_FIELDS = (
    "ignore_robots_txt",
    "include_sitemap",
    "follow_redirects",
    "restrict_to_child_urls",
    "use_headless_browser",
)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config is not None:
        payload: dict[str, Any] = load_config(args.config).to_dict()
    else:
        payload = {}

    if args.start_url:
        payload["start_url"] = args.start_url

    if not payload.get("start_url"):
        raise ValueError("No start URL provided. Use --config or --start_url.")

    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent
    if args.max_depth is not None:
        payload["max_crawl_depth"] = args.max_depth
    if args.max_parallel_tasks is not None:
        payload["max_parallel_tasks"] = args.max_parallel_tasks
    if args.throttle_ms is not None:
        payload["throttle_ms"] = args.throttle_ms
    if args.delay_ms is not None:
        payload["delay_ms"] = args.delay_ms
    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds

    if args.allow_domain:
        payload["allowed_domains"] = list(args.allow_domain)
    if args.deny_domain:
        payload["denied_domains"] = list(args.deny_domain)
    if args.exclude:
        payload["exclude_link_patterns"] = list(args.exclude)

    for name in _FLAG_FIELDS:
        value = getattr(args, name)
        if value is not None:
            payload[name] = value

    return CrawlConfig.from_dict(payload)


def setup_logging(log_file: Path | None, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    # stdout carries the resource stream.
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # selenium and urllib3 are chatty at DEBUG.
    logging.getLogger("selenium").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(stats: dict[str, Any], *, print_stats_json: bool) -> None:
    out = sys.stderr
    retrieval = stats.get("retrieval", {})

    print("\n=== Crawl Complete ===", file=out)
    for key in ["fetched_total", "duration_seconds"]:
        if key in stats:
            print(f"{key}: {stats[key]}", file=out)
    for key in ["redirects_followed", "throttled", "robots_denied", "render_fallbacks"]:
        if key in retrieval:
            print(f"{key}: {retrieval[key]}", file=out)
    status_codes = stats.get("fetch", {}).get("status_code_counts", {})
    if status_codes:
        print(f"status_codes: {dict(sorted(status_codes.items()))}", file=out)

    if print_stats_json:
        print("\n--- Full Stats JSON ---", file=out)
        print(json.dumps(stats, indent=2, sort_keys=True), file=out)


def run(pipeline: Pipeline, sink: TextIO) -> int:
    count = 0
    for resource in pipeline.crawl():
        sink.write(json.dumps(resource.to_json(), sort_keys=True) + "\n")
        sink.flush()
        count += 1
    return count


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, verbose=args.verbose)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    logging.info(
        "Starting crawl: start_url=%s, max_depth=%d, max_parallel_tasks=%d",
        config.start_url,
        config.max_crawl_depth,
        config.max_parallel_tasks,
    )

    pipeline = Pipeline(config)
    sink = sys.stdout
    try:
        if args.output is not None:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            sink = args.output.open("w", encoding="utf-8")
        count = run(pipeline, sink)
    except KeyboardInterrupt:
        pipeline.cancel()
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl failed")
        return 1
    finally:
        pipeline.close()
        if sink is not sys.stdout:
            sink.close()

    logging.info("Wrote %d resources", count)
    print_summary(pipeline.stats.to_json(), print_stats_json=args.print_stats_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
