# src/influencer_roi/performance_metrics.py
"""
Metric formulas for influencer campaigns.

Every ratio is rounded to 2 decimals with Python's round() (half to even).
A ratio whose denominator is zero is undefined: scalars return None and
series hold NaN. Zero is never used as a stand-in.
"""
import math
from typing import Mapping, Optional

import numpy as np
import pandas as pd

from .errors import InvalidBasisError
from .schema import Basis, coerce_enum


def _round2(value: float) -> float:
    return round(float(value), 2)


def _round2_or_nan(value: float) -> float:
    if value is None or math.isnan(value):
        return np.nan
    return _round2(value)


def engagement_rate(reach: float, likes: float, comments: float) -> Optional[float]:
    """Engagement rate in percent; None for zero-reach content."""
    if reach == 0:
        return None
    return _round2((likes + comments) / reach * 100)


def total_payout(contract: Mapping, post_count: float, order_count: float) -> float:
    """
    Payout owed under a contract.

    basis "post" pays rate per post, basis "order" pays rate per order.

    Raises:
        InvalidBasisError: for any other basis.
    """
    basis = coerce_enum(contract["basis"], Basis, case_sensitive=False)
    if basis is None:
        raise InvalidBasisError(f"Unknown payout basis: {contract['basis']!r}")
    rate = float(contract["rate"])
    if basis is Basis.POST:
        return rate * post_count
    return rate * order_count


def roi(total_revenue: float, total_payout: float) -> Optional[float]:
    """(revenue - payout) / payout; None when nothing was paid."""
    if total_payout == 0:
        return None
    return _round2((total_revenue - total_payout) / total_payout)


def roas(total_revenue: float, total_payout: float) -> Optional[float]:
    """revenue / payout; None when nothing was paid."""
    if total_payout == 0:
        return None
    return _round2(total_revenue / total_payout)


def incremental_roas(total_revenue: float, total_payout: float) -> Optional[float]:
    # No control group exists, so incremental ROAS is plain ROAS.
    return roas(total_revenue, total_payout)


def cost_per_order(total_payout: float, total_orders: float) -> Optional[float]:
    """Payout per attributed order; None when there were no orders."""
    if total_orders == 0:
        return None
    return _round2(total_payout / total_orders)


def _as_float(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series, errors="coerce").astype(float)


def _ratio_series(numerator: pd.Series, denominator: pd.Series, scale: float = 1.0) -> pd.Series:
    denom = _as_float(denominator)
    ratio = _as_float(numerator) / denom.where(denom != 0) * scale
    return ratio.map(_round2_or_nan).astype(float)


def engagement_rate_series(reach: pd.Series, likes: pd.Series, comments: pd.Series) -> pd.Series:
    """Vectorised engagement_rate; NaN where reach is zero."""
    return _ratio_series(_as_float(likes) + _as_float(comments), reach, scale=100)


def roi_series(total_revenue: pd.Series, total_payout: pd.Series) -> pd.Series:
    return _ratio_series(_as_float(total_revenue) - _as_float(total_payout), total_payout)


def roas_series(total_revenue: pd.Series, total_payout: pd.Series) -> pd.Series:
    return _ratio_series(total_revenue, total_payout)


def cost_per_order_series(total_payout: pd.Series, total_orders: pd.Series) -> pd.Series:
    return _ratio_series(total_payout, total_orders)


def contract_payouts(
    payouts: pd.DataFrame, post_counts: pd.Series, order_counts: pd.Series
) -> pd.Series:
    """
    Derived payout for every contract row.

    post_counts and order_counts are indexed by influencer_id. A contract's
    own ``orders`` value is used for order-based contracts when present,
    otherwise the influencer's tracked orders are used.
    """
    if payouts.empty:
        return pd.Series(dtype=float, index=payouts.index)

    basis = payouts["basis"].astype(str).str.strip().str.lower()
    unknown = sorted(set(basis[~basis.isin([b.value for b in Basis])]))
    if unknown:
        raise InvalidBasisError(f"Unknown payout basis: {unknown}")

    rate = _as_float(payouts["rate"])
    n_posts = payouts["influencer_id"].map(post_counts).fillna(0).astype(float)
    tracked_orders = payouts["influencer_id"].map(order_counts).fillna(0).astype(float)
    if "orders" in payouts.columns:
        n_orders = _as_float(payouts["orders"]).fillna(tracked_orders)
    else:
        n_orders = tracked_orders

    derived = np.where(basis == Basis.POST.value, rate * n_posts, rate * n_orders)
    return pd.Series(derived, index=payouts.index, dtype=float)
