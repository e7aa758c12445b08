from typing import Optional

import pandas as pd

from .campaign_analyzer import apply_limit, check_limit, influencer_performance
from .data_processing import EntityStore
from .performance_metrics import engagement_rate_series, roas_series, roi_series

# label for tracking rows with a blank product or campaign
BLANK_LABEL = "(none)"


def revenue_by_product(store: EntityStore, limit: Optional[int] = None) -> pd.DataFrame:
    """Orders and revenue per product"""
    limit = check_limit(limit)
    df = store.tracking.copy()
    df["product"] = df["product"].fillna(BLANK_LABEL)
    out = df.groupby("product", as_index=False).agg(
        total_orders=("orders", "sum"),
        total_revenue=("revenue", "sum"),
    )
    out = out.sort_values(
        ["total_revenue", "product"], ascending=[False, True], kind="mergesort"
    )
    return apply_limit(out, limit)


def revenue_by_campaign(store: EntityStore, limit: Optional[int] = None) -> pd.DataFrame:
    """Orders, revenue and distinct influencers per campaign"""
    limit = check_limit(limit)
    df = store.tracking.copy()
    df["campaign"] = df["campaign"].fillna(BLANK_LABEL)
    out = df.groupby("campaign", as_index=False).agg(
        influencers=("influencer_id", "nunique"),
        total_orders=("orders", "sum"),
        total_revenue=("revenue", "sum"),
    )
    out = out.sort_values(
        ["total_revenue", "campaign"], ascending=[False, True], kind="mergesort"
    )
    return apply_limit(out, limit)


def platform_performance(store: EntityStore, limit: Optional[int] = None) -> pd.DataFrame:
    """Influencer performance rolled up per platform"""
    limit = check_limit(limit)
    perf = influencer_performance(store)
    out = perf.groupby("platform", as_index=False).agg(
        influencers=("influencer_id", "count"),
        total_posts=("total_posts", "sum"),
        total_reach=("total_reach", "sum"),
        total_likes=("total_likes", "sum"),
        total_comments=("total_comments", "sum"),
        total_orders=("total_orders", "sum"),
        total_revenue=("total_revenue", "sum"),
        total_payout=("total_payout", "sum"),
    )
    out["engagement_rate_pct"] = engagement_rate_series(
        out["total_reach"], out["total_likes"], out["total_comments"]
    )
    out["roi"] = roi_series(out["total_revenue"], out["total_payout"])
    out["roas"] = roas_series(out["total_revenue"], out["total_payout"])
    out = out.sort_values(
        ["total_revenue", "platform"], ascending=[False, True], kind="mergesort"
    )
    return apply_limit(out, limit)


def kpi_over_time(store: EntityStore, freq: str = "D") -> pd.DataFrame:
    """Calculate KPIs aggregated over time."""
    tracking = store.tracking.dropna(subset=["order_date"]).set_index("order_date")
    posts = store.posts.dropna(subset=["post_date"]).set_index("post_date")

    sales = tracking.resample(freq).agg({"orders": "sum", "revenue": "sum"})
    content = posts.resample(freq).agg(
        {"post_id": "count", "reach": "sum", "likes": "sum", "comments": "sum"}
    ).rename(columns={"post_id": "posts"})

    kpi_df = pd.concat([sales, content], axis=1).fillna(0)
    for col in ["orders", "revenue", "posts", "reach", "likes", "comments"]:
        if col not in kpi_df.columns:
            kpi_df[col] = 0
    kpi_df["engagement_rate"] = engagement_rate_series(
        kpi_df["reach"], kpi_df["likes"], kpi_df["comments"]
    )
    kpi_df.index.name = "period"
    return kpi_df[["posts", "reach", "likes", "comments", "orders", "revenue", "engagement_rate"]]
