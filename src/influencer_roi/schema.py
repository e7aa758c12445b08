"""Closed vocabularies and column helpers for the four source tables."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional

import pandas as pd


class Platform(str, Enum):
    INSTAGRAM = "Instagram"
    YOUTUBE = "YouTube"
    TWITTER = "Twitter"


class Category(str, Enum):
    FITNESS = "Fitness"
    NUTRITION = "Nutrition"
    LIFESTYLE = "Lifestyle"
    WELLNESS = "Wellness"


class Basis(str, Enum):
    POST = "post"
    ORDER = "order"


# standardized name -> accepted source names, first match wins
COLUMN_CANDIDATES: Dict[str, Dict[str, List[str]]] = {
    "influencers": {
        "influencer_id": ["influencer_id", "id"],
        "name": ["name"],
        "category": ["category", "persona"],
        "gender": ["gender"],
        "follower_count": ["follower_count", "followers"],
        "platform": ["platform"],
    },
    "posts": {
        "post_id": ["post_id", "id"],
        "influencer_id": ["influencer_id"],
        "platform": ["platform"],
        "post_date": ["post_date", "date"],
        "url": ["url"],
        "caption": ["caption"],
        "reach": ["reach"],
        "likes": ["likes"],
        "comments": ["comments"],
    },
    "tracking": {
        "tracking_id": ["tracking_id", "id"],
        "source": ["source"],
        "campaign": ["campaign"],
        "influencer_id": ["influencer_id"],
        "user_id": ["user_id"],
        "product": ["product"],
        "order_date": ["order_date", "date"],
        "orders": ["orders"],
        "revenue": ["revenue"],
    },
    "payouts": {
        "contract_id": ["contract_id", "id"],
        "influencer_id": ["influencer_id"],
        "basis": ["basis"],
        "rate": ["rate"],
        "orders": ["orders"],
        "total_payout": ["total_payout", "payout"],
    },
}

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "influencers": ["influencer_id", "name", "category", "platform"],
    "posts": ["influencer_id", "reach", "likes", "comments"],
    "tracking": ["influencer_id", "orders", "revenue"],
    "payouts": ["influencer_id", "basis", "rate"],
}


def _first_match(columns: Iterable[str], candidates: Iterable[str]) -> Optional[str]:
    col_set = set(columns)
    for candidate in candidates:
        if candidate in col_set:
            return candidate
    return None


def infer_column_map(df: pd.DataFrame, table: str) -> Dict[str, str]:
    """
    Infer a mapping of source column -> standardized column name for a table.

    Source columns that already carry a standardized name are never renamed
    to a different one, so ``id`` only becomes ``post_id`` when no
    ``post_id`` column exists.
    """
    mapping: Dict[str, str] = {}
    taken = set()
    for standard_name, candidates in COLUMN_CANDIDATES[table].items():
        source_name = _first_match(df.columns, candidates)
        if source_name and source_name not in taken:
            mapping[source_name] = standard_name
            taken.add(source_name)
    return mapping


def normalize_columns(df: pd.DataFrame, table: str) -> pd.DataFrame:
    """Return a copy of df restricted to known columns under their standardized names."""
    column_map = infer_column_map(df, table)
    out = df[list(column_map)].rename(columns=column_map).copy()
    return out


def missing_columns(df: pd.DataFrame, table: str) -> List[str]:
    return [c for c in REQUIRED_COLUMNS[table] if c not in df.columns]


def enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def coerce_enum(value, enum_cls, case_sensitive: bool = True):
    """
    Return the enum member matching value, or None when it does not match.

    Matching is on the member value; basis values are compared lower-cased.
    """
    if isinstance(value, enum_cls):
        return value
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    if not case_sensitive:
        text = text.lower()
    try:
        return enum_cls(text)
    except ValueError:
        return None
