# src/influencer_roi/data_processing.py
"""
Loading and validation of the four entity tables.

The result is an EntityStore: an immutable snapshot that every report view
receives explicitly. Referential and value problems are raised here, at load
time, instead of surfacing as odd numbers in a report.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

from .config import ReportConfig
from .errors import DataIntegrityError, InvalidBasisError
from .io import load_dataframe
from .performance_metrics import contract_payouts
from .schema import (
    Basis,
    Category,
    Platform,
    enum_values,
    missing_columns,
    normalize_columns,
)

logger = logging.getLogger(__name__)

TABLES = ("influencers", "posts", "tracking", "payouts")

INFLUENCER_COLUMNS = ["influencer_id", "name", "category", "gender", "follower_count", "platform"]
POST_COLUMNS = [
    "post_id", "influencer_id", "platform", "post_date", "url", "caption",
    "reach", "likes", "comments",
]
TRACKING_COLUMNS = [
    "tracking_id", "source", "campaign", "influencer_id", "user_id", "product",
    "order_date", "orders", "revenue",
]
PAYOUT_COLUMNS = [
    "contract_id", "influencer_id", "basis", "rate", "orders", "total_payout",
    "stored_total_payout",
]


@dataclass(frozen=True, eq=False)
class EntityStore:
    """Read-only snapshot of influencers, posts, tracking records and payout contracts."""
    influencers: pd.DataFrame
    posts: pd.DataFrame
    tracking: pd.DataFrame
    payouts: pd.DataFrame

    def post_counts(self) -> pd.Series:
        """Number of posts per influencer_id."""
        return self.posts.groupby("influencer_id").size()

    def order_counts(self) -> pd.Series:
        """Tracked orders per influencer_id."""
        return self.tracking.groupby("influencer_id")["orders"].sum()


def load_data(file_path):
    """Load and return one source table"""
    return load_dataframe(file_path)


def _normalize_id(value) -> Optional[str]:
    if pd.isna(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


def _normalize_ids(series: pd.Series) -> pd.Series:
    return series.map(_normalize_id).astype(object)


def clean_data(df: pd.DataFrame, table: str, dedupe: bool = False) -> pd.DataFrame:
    """
    Standardize column names, optionally dropping exact duplicate rows.

    Only the influencer table is deduplicated: identical posts or tracking
    rows without ids are distinct events.

    Raises:
        DataIntegrityError: when required columns are missing.
    """
    df_clean = normalize_columns(df, table)
    missing = missing_columns(df_clean, table)
    if missing:
        raise DataIntegrityError(f"Missing required columns in {table}: {missing}")

    if dedupe:
        df_clean = df_clean.drop_duplicates().reset_index(drop=True)
    df_clean["influencer_id"] = _normalize_ids(df_clean["influencer_id"])
    return df_clean


def _ensure_columns(df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df[columns]


def _generate_ids(df: pd.DataFrame, id_col: str) -> pd.Series:
    if id_col in df.columns and df[id_col].notna().all():
        return _normalize_ids(df[id_col])
    return pd.Series([str(i) for i in range(1, len(df) + 1)], index=df.index, dtype=object)


def _validate_enum(df: pd.DataFrame, col: str, enum_cls, table: str) -> pd.Series:
    values = df[col].astype(str).str.strip()
    allowed = enum_values(enum_cls)
    unknown = sorted(set(values[~values.isin(allowed)]))
    if unknown:
        raise DataIntegrityError(
            f"Unknown {col} values in {table}: {unknown}. Expected one of {allowed}"
        )
    return values


def _non_negative(df: pd.DataFrame, col: str, table: str, integer: bool = False,
                  required: bool = True) -> pd.Series:
    values = pd.to_numeric(df[col], errors="coerce")
    bad_type = values.isna() & df[col].notna()
    if bad_type.any():
        raise DataIntegrityError(f"Non-numeric {col} in {table}: {sorted(set(df.loc[bad_type, col].astype(str)))}")
    if required and values.isna().any():
        raise DataIntegrityError(f"Missing {col} in {table} for {int(values.isna().sum())} rows")
    if (values < 0).any():
        raise DataIntegrityError(f"Negative {col} in {table} for {int((values < 0).sum())} rows")
    if integer:
        fractional = values.notna() & (values % 1 != 0)
        if fractional.any():
            raise DataIntegrityError(
                f"Non-integer {col} in {table}: {sorted(set(values[fractional]))[:10]}"
            )
    if integer and required:
        return values.astype(int)
    return values.astype(float)


def _check_references(df: pd.DataFrame, table: str, known_ids: set) -> None:
    blank = df["influencer_id"].isna()
    if blank.any():
        raise DataIntegrityError(f"{int(blank.sum())} rows in {table} have no influencer_id")
    unknown = sorted(set(df["influencer_id"]) - known_ids)
    if unknown:
        raise DataIntegrityError(f"Unknown influencer_id in {table}: {unknown[:10]}")


def prepare_influencers(df: pd.DataFrame) -> pd.DataFrame:
    out = clean_data(df, "influencers", dedupe=True)
    if out["influencer_id"].isna().any():
        raise DataIntegrityError("influencers table has rows without influencer_id")
    dupes = sorted(set(out.loc[out["influencer_id"].duplicated(), "influencer_id"]))
    if dupes:
        raise DataIntegrityError(f"Conflicting rows for influencer_id: {dupes}")

    out["platform"] = _validate_enum(out, "platform", Platform, "influencers")
    out["category"] = _validate_enum(out, "category", Category, "influencers")
    if "follower_count" in out.columns:
        out["follower_count"] = _non_negative(out, "follower_count", "influencers", integer=True)
    else:
        out["follower_count"] = 0
    return _ensure_columns(out, INFLUENCER_COLUMNS).reset_index(drop=True)


def prepare_posts(df: pd.DataFrame, influencers: pd.DataFrame) -> pd.DataFrame:
    out = clean_data(df, "posts")
    _check_references(out, "posts", set(influencers["influencer_id"]))

    out["post_id"] = _generate_ids(out, "post_id")
    # posts without a platform inherit their influencer's
    platform_by_id = influencers.set_index("influencer_id")["platform"]
    inherited = out["influencer_id"].map(platform_by_id)
    if "platform" in out.columns:
        out["platform"] = out["platform"].where(out["platform"].notna(), inherited)
    else:
        out["platform"] = inherited
    out["platform"] = _validate_enum(out, "platform", Platform, "posts")
    for col in ("reach", "likes", "comments"):
        out[col] = _non_negative(out, col, "posts", integer=True)
    if "post_date" in out.columns:
        out["post_date"] = pd.to_datetime(out["post_date"], errors="coerce")
    else:
        out["post_date"] = pd.NaT
    return _ensure_columns(out, POST_COLUMNS)


def prepare_tracking(df: pd.DataFrame, influencers: pd.DataFrame,
                     drop_unattributed: bool = False) -> pd.DataFrame:
    out = clean_data(df, "tracking")
    blank = out["influencer_id"].isna()
    if blank.any() and drop_unattributed:
        logger.warning("Dropping %d tracking rows without influencer_id", int(blank.sum()))
        out = out[~blank].reset_index(drop=True)
    _check_references(out, "tracking", set(influencers["influencer_id"]))

    out["tracking_id"] = _generate_ids(out, "tracking_id")
    out["orders"] = _non_negative(out, "orders", "tracking", integer=True)
    out["revenue"] = _non_negative(out, "revenue", "tracking")
    if "order_date" in out.columns:
        out["order_date"] = pd.to_datetime(out["order_date"], errors="coerce")
    else:
        out["order_date"] = pd.NaT
    return _ensure_columns(out, TRACKING_COLUMNS)


def prepare_payouts(df: pd.DataFrame, influencers: pd.DataFrame) -> pd.DataFrame:
    out = clean_data(df, "payouts")
    _check_references(out, "payouts", set(influencers["influencer_id"]))

    out["contract_id"] = _generate_ids(out, "contract_id")
    basis = out["basis"].astype(str).str.strip().str.lower()
    unknown = sorted(set(basis[~basis.isin(enum_values(Basis))]))
    if unknown:
        raise InvalidBasisError(f"Unknown payout basis in payouts: {unknown}")
    out["basis"] = basis
    out["rate"] = _non_negative(out, "rate", "payouts")
    if "orders" in out.columns:
        out["orders"] = _non_negative(out, "orders", "payouts", integer=True, required=False)
    if "total_payout" in out.columns:
        out["stored_total_payout"] = _non_negative(out, "total_payout", "payouts", required=False)
    return _ensure_columns(out, PAYOUT_COLUMNS)


def reconcile_payouts(payouts: pd.DataFrame, posts: pd.DataFrame, tracking: pd.DataFrame,
                      strict: bool = False, tolerance: float = 0.01) -> pd.DataFrame:
    """
    Replace total_payout with the value derived from rate and counts.

    A stored figure that disagrees is logged, or raised when strict.
    """
    out = payouts.copy()
    post_counts = posts.groupby("influencer_id").size()
    order_counts = tracking.groupby("influencer_id")["orders"].sum()
    derived = contract_payouts(out, post_counts, order_counts)

    stored = pd.to_numeric(out["stored_total_payout"], errors="coerce")
    mismatch = stored.notna() & ((stored - derived).abs() > tolerance)
    if mismatch.any():
        ids = sorted(set(out.loc[mismatch, "influencer_id"]))
        message = f"Stored total_payout disagrees with rate x count for {int(mismatch.sum())} contracts: {ids[:10]}"
        if strict:
            raise DataIntegrityError(message)
        logger.warning("%s; using derived values", message)

    out["total_payout"] = derived.astype(float)
    return out


def build_store(influencers: pd.DataFrame, posts: pd.DataFrame, tracking: pd.DataFrame,
                payouts: pd.DataFrame, config: Optional[ReportConfig] = None) -> EntityStore:
    """
    Validate raw tables and return an EntityStore.

    Raises:
        DataIntegrityError: unknown influencer references, bad enum values,
            negative counts or conflicting duplicates.
        InvalidBasisError: a payout basis other than 'post' or 'order'.
    """
    config = config or ReportConfig()
    influencers_df = prepare_influencers(influencers)
    posts_df = prepare_posts(posts, influencers_df)
    tracking_df = prepare_tracking(tracking, influencers_df, config.drop_unattributed)
    payouts_df = prepare_payouts(payouts, influencers_df)
    payouts_df = reconcile_payouts(
        payouts_df, posts_df, tracking_df,
        strict=config.strict_payouts, tolerance=config.payout_tolerance,
    )
    logger.info(
        "Entity store ready: %d influencers, %d posts, %d tracking rows, %d payout contracts",
        len(influencers_df), len(posts_df), len(tracking_df), len(payouts_df),
    )
    return EntityStore(
        influencers=influencers_df,
        posts=posts_df,
        tracking=tracking_df,
        payouts=payouts_df,
    )


def load_store(config: Optional[ReportConfig] = None) -> EntityStore:
    """Read the four tables named in config and build an EntityStore."""
    config = config or ReportConfig()
    frames = {table: load_data(config.table_path(table)) for table in TABLES}
    return build_store(config=config, **frames)
