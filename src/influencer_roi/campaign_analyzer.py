# src/influencer_roi/campaign_analyzer.py
"""
Report views over an EntityStore.

Every view returns a new DataFrame with a fresh RangeIndex; the store itself
is never modified. Ratio columns hold NaN where the metric is undefined.

Join policy:
  - influencer_performance, roi_view and roas_view list every influencer
    (outer join); missing posts, tracking or payouts count as zero.
  - persona_roi only uses influencers that have both tracking records and
    payout contracts (inner join).
Revenue, orders and payout are summed per influencer in separate passes
before any join, so no join multiplies rows.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .data_processing import EntityStore
from .errors import QueryValidationError
from .performance_metrics import (
    cost_per_order,
    cost_per_order_series,
    engagement_rate,
    engagement_rate_series,
    roas,
    roas_series,
    roi,
    roi_series,
)
from .schema import Category, Platform, coerce_enum, enum_values

logger = logging.getLogger(__name__)

FILTER_FIELDS = ("product", "platform", "category", "influencer_id")
POST_FILTER_FIELDS = ("platform", "category", "influencer_id")
INFLUENCER_FILTER_FIELDS = ("platform", "category", "influencer_id")
TOP_SORT_FIELDS = ("total_revenue", "total_orders")
INFLUENCER_ATTRS = ["influencer_id", "name", "category", "platform", "follower_count"]


def check_limit(limit: Optional[int], name: str = "limit") -> Optional[int]:
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise QueryValidationError(f"{name} must be a non-negative integer, got {limit!r}")
    return limit


def apply_limit(df: pd.DataFrame, limit: Optional[int]) -> pd.DataFrame:
    if limit is not None:
        df = df.head(limit)
    return df.reset_index(drop=True)


def _sort_desc(df: pd.DataFrame, by: str, tiebreak: str) -> pd.DataFrame:
    return df.sort_values(
        [by, tiebreak], ascending=[False, True], na_position="last", kind="mergesort"
    )


def _as_values(field: str, value: Any) -> List[str]:
    """Normalize a filter value (scalar or iterable) into a list of accepted strings."""
    if isinstance(value, (str, Platform, Category)) or not isinstance(value, Iterable):
        values = [value]
    else:
        values = list(value)
    if not values:
        raise QueryValidationError(f"Empty value list for filter '{field}'")

    enum_cls = {"platform": Platform, "category": Category}.get(field)
    if enum_cls is None:
        return [str(v) for v in values]

    out = []
    for v in values:
        member = coerce_enum(v, enum_cls)
        if member is None:
            raise QueryValidationError(
                f"Unknown {field} {v!r}. Expected one of {enum_values(enum_cls)}"
            )
        out.append(member.value)
    return out


def _apply_filters(df: pd.DataFrame, filters: Dict[str, Any], allowed) -> pd.DataFrame:
    """AND-combine equality/membership filters; None values are ignored."""
    unknown = sorted(set(filters) - set(allowed))
    if unknown:
        raise QueryValidationError(
            f"Unknown filter field(s): {unknown}. Allowed: {list(allowed)}"
        )
    for field, value in filters.items():
        if value is None:
            continue
        df = df[df[field].isin(_as_values(field, value))]
    return df


def _influencer_totals(store: EntityStore) -> pd.DataFrame:
    """Per-influencer sums over posts, tracking and payouts, zero-filled for every influencer."""
    posts = store.posts.groupby("influencer_id").agg(
        total_posts=("post_id", "count"),
        total_reach=("reach", "sum"),
        total_likes=("likes", "sum"),
        total_comments=("comments", "sum"),
    )
    tracking = store.tracking.groupby("influencer_id").agg(
        tracking_records=("tracking_id", "count"),
        total_orders=("orders", "sum"),
        total_revenue=("revenue", "sum"),
    )
    payouts = store.payouts.groupby("influencer_id").agg(
        contracts=("contract_id", "count"),
        total_payout=("total_payout", "sum"),
    )

    totals = pd.concat([posts, tracking, payouts], axis=1)
    totals = totals.reindex(store.influencers["influencer_id"].tolist()).fillna(0)
    totals.index.name = "influencer_id"

    for col in ["total_posts", "total_reach", "total_likes", "total_comments",
                "tracking_records", "total_orders", "contracts"]:
        totals[col] = totals[col].astype(int)
    for col in ["total_revenue", "total_payout"]:
        totals[col] = totals[col].astype(float)
    totals["total_engagement"] = totals["total_likes"] + totals["total_comments"]
    return totals.reset_index()


def post_performance(store: EntityStore, limit: Optional[int] = None, **filters) -> pd.DataFrame:
    """
    One row per post with its influencer and engagement_rate, by reach descending.

    Filters: platform (of the post), category, influencer_id.
    """
    limit = check_limit(limit)
    df = store.posts.merge(
        store.influencers[["influencer_id", "name", "category", "follower_count"]],
        on="influencer_id",
        how="left",
    )
    df = _apply_filters(df, filters, POST_FILTER_FIELDS).copy()
    df["engagement_rate"] = engagement_rate_series(df["reach"], df["likes"], df["comments"])
    df = df.sort_values("reach", ascending=False, kind="mergesort")
    cols = [
        "post_id", "influencer_id", "name", "category", "platform", "post_date",
        "url", "reach", "likes", "comments", "engagement_rate",
    ]
    return apply_limit(df[cols], limit)


def influencer_performance(store: EntityStore, limit: Optional[int] = None, **filters) -> pd.DataFrame:
    """
    Every influencer with summed reach, engagement, orders, revenue and payout.

    avg_engagement_rate_pct is sum(likes + comments) / sum(reach) * 100,
    so high-reach posts weigh more than low-reach ones.
    Filters: platform, category, influencer_id.
    """
    limit = check_limit(limit)
    df = store.influencers[INFLUENCER_ATTRS].merge(
        _influencer_totals(store), on="influencer_id", how="left"
    )
    df = _apply_filters(df, filters, INFLUENCER_FILTER_FIELDS).copy()
    df["avg_engagement_rate_pct"] = engagement_rate_series(
        df["total_reach"], df["total_likes"], df["total_comments"]
    )
    df["roi"] = roi_series(df["total_revenue"], df["total_payout"])
    df["roas"] = roas_series(df["total_revenue"], df["total_payout"])
    df["cost_per_order"] = cost_per_order_series(df["total_payout"], df["total_orders"])

    cols = INFLUENCER_ATTRS + [
        "total_posts", "total_reach", "total_likes", "total_comments",
        "total_engagement", "total_orders", "total_revenue", "total_payout",
        "avg_engagement_rate_pct", "roi", "roas", "cost_per_order",
    ]
    return apply_limit(_sort_desc(df[cols], "total_revenue", "influencer_id"), limit)


def _revenue_vs_payout(store: EntityStore) -> pd.DataFrame:
    totals = _influencer_totals(store)
    df = store.influencers[["influencer_id", "name", "category", "platform"]].merge(
        totals[["influencer_id", "total_orders", "total_revenue", "total_payout"]],
        on="influencer_id",
        how="left",
    )
    return df


def roi_view(store: EntityStore, limit: Optional[int] = None) -> pd.DataFrame:
    """ROI per influencer, best first; influencers without payout sort last with null ROI."""
    limit = check_limit(limit)
    df = _revenue_vs_payout(store)
    df["roi"] = roi_series(df["total_revenue"], df["total_payout"])
    return apply_limit(_sort_desc(df, "roi", "influencer_id"), limit)


def roas_view(store: EntityStore, limit: Optional[int] = None) -> pd.DataFrame:
    """
    ROAS per influencer, best first, nulls last.

    incremental_roas is plain ROAS: there is no control group to measure a
    baseline against.
    """
    limit = check_limit(limit)
    df = _revenue_vs_payout(store)
    df["roas"] = roas_series(df["total_revenue"], df["total_payout"])
    df["incremental_roas"] = df["roas"]
    return apply_limit(_sort_desc(df, "roas", "influencer_id"), limit)


def filter_tracking(store: EntityStore, limit: Optional[int] = None, **filters) -> pd.DataFrame:
    """
    Tracking records joined to their influencer, filtered and sorted by revenue.

    Filters are combined with AND. Each accepts one value or an iterable of
    values: product, platform, category, influencer_id.

    Raises:
        QueryValidationError: unknown filter field, unknown platform/category,
            or a bad limit.
    """
    limit = check_limit(limit)
    df = store.tracking.merge(
        store.influencers[INFLUENCER_ATTRS], on="influencer_id", how="inner"
    )
    df = _apply_filters(df, filters, FILTER_FIELDS)

    logger.debug("filter_tracking %s matched %d rows", filters, len(df))
    cols = [
        "tracking_id", "influencer_id", "name", "category", "platform", "source",
        "campaign", "user_id", "product", "order_date", "orders", "revenue",
    ]
    df = df.sort_values("revenue", ascending=False, kind="mergesort")
    return apply_limit(df[cols], limit)


def filter_by_product(store: EntityStore, product) -> pd.DataFrame:
    return filter_tracking(store, product=product)


def filter_by_platform(store: EntityStore, platform) -> pd.DataFrame:
    return filter_tracking(store, platform=platform)


def filter_by_category(store: EntityStore, category) -> pd.DataFrame:
    return filter_tracking(store, category=category)


def top_influencers(store: EntityStore, n: Optional[int] = 10,
                    sort_by: str = "total_revenue") -> pd.DataFrame:
    """
    Top n influencers at (name, platform, category) grain.

    sort_by is 'total_revenue' or 'total_orders'. n=None returns every row;
    any n gives a prefix of that ordering.
    """
    n = check_limit(n, "n")
    if sort_by not in TOP_SORT_FIELDS:
        raise QueryValidationError(
            f"Cannot sort top influencers by {sort_by!r}. Allowed: {list(TOP_SORT_FIELDS)}"
        )

    perf = influencer_performance(store)
    grouped = perf.groupby(["name", "platform", "category"], as_index=False).agg(
        total_posts=("total_posts", "sum"),
        total_reach=("total_reach", "sum"),
        total_engagement=("total_engagement", "sum"),
        total_orders=("total_orders", "sum"),
        total_revenue=("total_revenue", "sum"),
        total_payout=("total_payout", "sum"),
    )
    grouped["roi"] = roi_series(grouped["total_revenue"], grouped["total_payout"])
    grouped = grouped.sort_values(
        [sort_by, "name", "platform", "category"],
        ascending=[False, True, True, True],
        kind="mergesort",
    )
    return apply_limit(grouped, n)


def persona_roi(store: EntityStore, n: Optional[int] = None, worst: bool = False) -> pd.DataFrame:
    """
    ROI per category over influencers with both tracking and payout data.

    Best (default) sorts ROI descending with nulls last. worst=True drops
    personas whose ROI is undefined and sorts ascending.
    """
    n = check_limit(n, "n")
    totals = _influencer_totals(store)
    eligible = totals[(totals["tracking_records"] > 0) & (totals["contracts"] > 0)]
    excluded = len(totals) - len(eligible)
    if excluded:
        logger.debug("persona_roi excludes %d influencers lacking tracking or payout data", excluded)

    df = eligible.merge(store.influencers[["influencer_id", "category"]], on="influencer_id")
    grouped = df.groupby("category", as_index=False).agg(
        influencers=("influencer_id", "nunique"),
        total_revenue=("total_revenue", "sum"),
        total_payout=("total_payout", "sum"),
    )
    grouped["roi"] = roi_series(grouped["total_revenue"], grouped["total_payout"])

    if worst:
        grouped = grouped[grouped["roi"].notna()].sort_values(
            ["roi", "category"], ascending=[True, True], kind="mergesort"
        )
    else:
        grouped = _sort_desc(grouped, "roi", "category")
    return apply_limit(grouped, n)


def best_personas(store: EntityStore, n: Optional[int] = 3) -> pd.DataFrame:
    return persona_roi(store, n=n)


def worst_personas(store: EntityStore, n: Optional[int] = 3) -> pd.DataFrame:
    return persona_roi(store, n=n, worst=True)


def summarize_campaigns(store: EntityStore) -> Dict[str, Any]:
    """
    Returns summary metrics across every influencer:
      - totals for posts, reach, engagement, orders, revenue, payout
      - engagement_rate_pct, roi, roas, cost_per_order (None when undefined)
    """
    totals = _influencer_totals(store)
    total_reach = int(totals["total_reach"].sum())
    total_likes = int(totals["total_likes"].sum())
    total_comments = int(totals["total_comments"].sum())
    total_orders = int(totals["total_orders"].sum())
    total_revenue = float(totals["total_revenue"].sum())
    total_payout = float(totals["total_payout"].sum())

    return {
        "influencers": int(len(store.influencers)),
        "total_posts": int(len(store.posts)),
        "total_reach": total_reach,
        "total_engagement": total_likes + total_comments,
        "total_orders": total_orders,
        "total_revenue": total_revenue,
        "total_payout": total_payout,
        "engagement_rate_pct": engagement_rate(total_reach, total_likes, total_comments),
        "roi": roi(total_revenue, total_payout),
        "roas": roas(total_revenue, total_payout),
        "cost_per_order": cost_per_order(total_payout, total_orders),
    }


def to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Report rows as plain dicts, with NaN/NaT turned into None."""
    return df.astype(object).where(df.notna(), None).to_dict("records")
