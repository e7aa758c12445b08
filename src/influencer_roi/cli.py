"""
Influencer campaign reports - command line entry point

Usage:
    influencer-roi --data-dir ./data --view influencers
    influencer-roi --view roi --limit 5
    influencer-roi --view tracking --product Protein --platform Instagram
    influencer-roi --view top --sort-by total_orders --limit 3
    influencer-roi --view personas --worst --output-dir ./reports --format csv parquet
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

import pandas as pd

from . import analysis, campaign_analyzer
from .config import ReportConfig
from .data_processing import EntityStore, load_store
from .errors import InfluencerROIError
from .io import write_outputs
from .logging_utils import setup_logging

logger = logging.getLogger(__name__)

VIEWS = (
    "posts", "influencers", "roi", "roas", "tracking", "top", "personas",
    "products", "campaigns", "platforms", "trend", "summary",
)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="influencer-roi",
        description="Influencer campaign performance reports (engagement, ROI, ROAS)",
    )
    parser.add_argument(
        "--data-dir", default=None,
        help="Directory holding influencers.csv, posts.csv, tracking.csv, payouts.csv",
    )
    parser.add_argument("--view", choices=VIEWS, default="influencers", help="Report to produce")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of rows")
    parser.add_argument(
        "--sort-by", choices=campaign_analyzer.TOP_SORT_FIELDS, default="total_revenue",
        help="Ranking field for --view top",
    )
    parser.add_argument("--worst", action="store_true", help="Worst personas instead of best")
    parser.add_argument("--product", nargs="+", default=None, help="Filter tracking by product")
    parser.add_argument("--platform", nargs="+", default=None, help="Filter by platform")
    parser.add_argument("--category", nargs="+", default=None, help="Filter by influencer category")
    parser.add_argument("--influencer-id", nargs="+", default=None, help="Filter by influencer id")
    parser.add_argument("--freq", default="D", help="Resample frequency for --view trend")
    parser.add_argument(
        "--drop-unattributed", action="store_true", default=None,
        help="Drop tracking rows without an influencer instead of failing",
    )
    parser.add_argument("--output-dir", default=None, help="Write the report here instead of stdout")
    parser.add_argument("--format", nargs="+", default=None, choices=["csv", "parquet"],
                        help="Output formats for --output-dir")
    parser.add_argument(
        "--log-level", type=str.upper, default=None, choices=LOG_LEVELS,
        help="Console log level (default: INFO or INFLUENCER_ROI_LOG_LEVEL)",
    )
    return parser.parse_args(argv)


def build_view(store: EntityStore, args: argparse.Namespace, config: ReportConfig):
    """Return the requested report as a DataFrame, or a dict for the summary view."""
    view = args.view
    limit = args.limit
    if view == "posts":
        return campaign_analyzer.post_performance(
            store, limit=limit, platform=args.platform, category=args.category,
            influencer_id=args.influencer_id,
        )
    if view == "influencers":
        return campaign_analyzer.influencer_performance(
            store, limit=limit, platform=args.platform, category=args.category,
            influencer_id=args.influencer_id,
        )
    if view == "roi":
        return campaign_analyzer.roi_view(store, limit=limit)
    if view == "roas":
        return campaign_analyzer.roas_view(store, limit=limit)
    if view == "tracking":
        return campaign_analyzer.filter_tracking(
            store,
            limit=limit,
            product=args.product,
            platform=args.platform,
            category=args.category,
            influencer_id=args.influencer_id,
        )
    if view == "top":
        n = limit if limit is not None else config.default_limit
        return campaign_analyzer.top_influencers(store, n=n, sort_by=args.sort_by)
    if view == "personas":
        return campaign_analyzer.persona_roi(store, n=limit, worst=args.worst)
    if view == "products":
        return analysis.revenue_by_product(store, limit=limit)
    if view == "campaigns":
        return analysis.revenue_by_campaign(store, limit=limit)
    if view == "platforms":
        return analysis.platform_performance(store, limit=limit)
    if view == "trend":
        return analysis.kpi_over_time(store, freq=args.freq).reset_index()
    return campaign_analyzer.summarize_campaigns(store)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = ReportConfig.from_env(
            data_dir=args.data_dir,
            output_dir=args.output_dir,
            output_formats=args.format,
            log_level=args.log_level,
            drop_unattributed=args.drop_unattributed,
        )
        setup_logging(config.log_level, log_file=config.log_file)
    except ValueError as exc:
        # logging is not configured yet
        print(f"influencer-roi: {exc}", file=sys.stderr)
        return 1

    try:
        store = load_store(config)
        result = build_view(store, args, config)
    except (InfluencerROIError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    if isinstance(result, dict):
        if args.output_dir:
            result = pd.DataFrame([result])
        else:
            print(json.dumps(result, indent=2))
            return 0

    if args.output_dir:
        try:
            written = write_outputs({args.view: result}, config.output_dir, config.output_formats)
        except InfluencerROIError as exc:
            logger.error("%s", exc)
            return 1
        for fmt, path in written[args.view].items():
            logger.info("%s report: %s", fmt, path)
    else:
        with pd.option_context("display.max_rows", None, "display.width", 200):
            print(result.to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
