"""
Influencer campaign reporting.

Loads four tables (influencers, posts, tracking records, payout contracts)
into an immutable EntityStore and computes engagement, ROI and ROAS views.

Quick start:
    from influencer_roi import ReportConfig, load_store, influencer_performance, roi_view

    store = load_store(ReportConfig(data_dir="./data"))
    influencer_performance(store)   # every influencer, by revenue
    roi_view(store, limit=5)        # best ROI first, undefined ROI last
"""

from .analysis import kpi_over_time, platform_performance, revenue_by_campaign, revenue_by_product
from .campaign_analyzer import (
    best_personas,
    filter_by_category,
    filter_by_platform,
    filter_by_product,
    filter_tracking,
    influencer_performance,
    persona_roi,
    post_performance,
    roas_view,
    roi_view,
    summarize_campaigns,
    to_records,
    top_influencers,
    worst_personas,
)
from .config import ReportConfig, default_config
from .data_processing import EntityStore, build_store, load_store
from .errors import (
    ConfigError,
    DataIntegrityError,
    InfluencerROIError,
    InvalidBasisError,
    QueryValidationError,
)
from .performance_metrics import (
    cost_per_order,
    engagement_rate,
    incremental_roas,
    roas,
    roi,
    total_payout,
)
from .schema import Basis, Category, Platform

__all__ = [
    # Store
    "EntityStore",
    "build_store",
    "load_store",
    # Config
    "ReportConfig",
    "default_config",
    # Metrics
    "engagement_rate",
    "total_payout",
    "roi",
    "roas",
    "incremental_roas",
    "cost_per_order",
    # Views
    "post_performance",
    "influencer_performance",
    "roi_view",
    "roas_view",
    "filter_tracking",
    "filter_by_product",
    "filter_by_platform",
    "filter_by_category",
    "top_influencers",
    "persona_roi",
    "best_personas",
    "worst_personas",
    "summarize_campaigns",
    "to_records",
    "revenue_by_product",
    "revenue_by_campaign",
    "platform_performance",
    "kpi_over_time",
    # Types
    "Platform",
    "Category",
    "Basis",
    # Errors
    "InfluencerROIError",
    "DataIntegrityError",
    "InvalidBasisError",
    "QueryValidationError",
    "ConfigError",
]

__version__ = "0.1.0"
