import logging

import pandas as pd
import pytest

from influencer_roi.config import ReportConfig
from influencer_roi.data_processing import EntityStore, build_store, clean_data, load_store
from influencer_roi.errors import DataIntegrityError, InvalidBasisError


def sample_tables():
    influencers = pd.DataFrame(
        [
            {"id": "HK01", "name": "Alice", "category": "Fitness", "gender": "F",
             "follower_count": 50000, "platform": "Instagram"},
            {"id": "HK02", "name": "Bob", "category": "Nutrition", "gender": "M",
             "follower_count": 120000, "platform": "YouTube"},
        ]
    )
    posts = pd.DataFrame(
        [
            {"influencer_id": "HK01", "platform": "Instagram", "date": "2024-01-01",
             "url": "https://post/1", "caption": "x", "reach": 1000, "likes": 50, "comments": 10},
            {"influencer_id": "HK01", "platform": "Instagram", "date": "2024-01-02",
             "url": "https://post/2", "caption": "x", "reach": 0, "likes": 5, "comments": 2},
            {"influencer_id": "HK02", "platform": "YouTube", "date": "2024-01-03",
             "url": "https://post/3", "caption": "x", "reach": 5000, "likes": 300, "comments": 40},
        ]
    )
    tracking = pd.DataFrame(
        [
            {"source": "influencer", "campaign": "camp_1", "influencer_id": "HK01", "user_id": 1,
             "product": "Protein", "date": "2024-01-05", "orders": 10, "revenue": 5000.0},
            {"source": "influencer", "campaign": "camp_2", "influencer_id": "HK02", "user_id": 2,
             "product": "Snack", "date": "2024-01-06", "orders": 2, "revenue": 998.0},
        ]
    )
    payouts = pd.DataFrame(
        [
            {"influencer_id": "HK01", "basis": "order", "rate": 100.0, "orders": 10, "total_payout": 1000.0},
            {"influencer_id": "HK02", "basis": "post", "rate": 2000.0, "orders": 1, "total_payout": 2000.0},
        ]
    )
    return {"influencers": influencers, "posts": posts, "tracking": tracking, "payouts": payouts}


def test_build_store():
    store = build_store(**sample_tables())

    assert isinstance(store, EntityStore)
    assert list(store.influencers["influencer_id"]) == ["HK01", "HK02"]
    assert len(store.posts) == 3
    # ids are generated when the export has none
    assert list(store.posts["post_id"]) == ["1", "2", "3"]
    assert pd.api.types.is_datetime64_any_dtype(store.tracking["order_date"])
    assert list(store.payouts["total_payout"]) == [1000.0, 2000.0]
    assert store.post_counts()["HK01"] == 2
    assert store.order_counts()["HK02"] == 2


def test_store_is_frozen():
    store = build_store(**sample_tables())
    with pytest.raises(AttributeError):
        store.posts = pd.DataFrame()


def test_clean_data_requires_columns():
    df = pd.DataFrame({"influencer_id": ["HK01"], "reach": [1]})
    with pytest.raises(DataIntegrityError, match="likes"):
        clean_data(df, "posts")


def test_exact_duplicate_influencers_collapse():
    tables = sample_tables()
    tables["influencers"] = pd.concat(
        [tables["influencers"], tables["influencers"].iloc[[0]]], ignore_index=True
    )
    store = build_store(**tables)
    assert len(store.influencers) == 2


def test_conflicting_influencer_rows_rejected():
    tables = sample_tables()
    clash = tables["influencers"].iloc[[0]].copy()
    clash["name"] = "Someone else"
    tables["influencers"] = pd.concat([tables["influencers"], clash], ignore_index=True)
    with pytest.raises(DataIntegrityError, match="HK01"):
        build_store(**tables)


def test_unknown_influencer_reference():
    tables = sample_tables()
    tables["posts"].loc[0, "influencer_id"] = "HK99"
    with pytest.raises(DataIntegrityError, match="HK99"):
        build_store(**tables)


def test_unknown_influencer_in_payouts():
    tables = sample_tables()
    tables["payouts"].loc[1, "influencer_id"] = "ZZ"
    with pytest.raises(DataIntegrityError, match="payouts"):
        build_store(**tables)


def test_unattributed_tracking_rows():
    tables = sample_tables()
    organic = pd.DataFrame(
        [{"source": "organic", "campaign": None, "influencer_id": None, "user_id": 3,
          "product": "Protein", "date": "2024-01-07", "orders": 1, "revenue": 499.0}]
    )
    tables["tracking"] = pd.concat([tables["tracking"], organic], ignore_index=True)

    with pytest.raises(DataIntegrityError, match="no influencer_id"):
        build_store(**tables)

    store = build_store(config=ReportConfig(drop_unattributed=True), **tables)
    assert len(store.tracking) == 2


def test_numeric_ids_normalized():
    tables = sample_tables()
    tables["influencers"]["id"] = [1, 2]
    tables["posts"]["influencer_id"] = [1.0, 1.0, 2.0]
    tables["tracking"]["influencer_id"] = pd.Series([1, 2], dtype="Int64")
    tables["payouts"]["influencer_id"] = ["1", "2"]

    store = build_store(**tables)
    assert set(store.posts["influencer_id"]) == {"1", "2"}
    assert set(store.tracking["influencer_id"]) == {"1", "2"}


def test_invalid_platform_rejected():
    tables = sample_tables()
    tables["influencers"].loc[0, "platform"] = "MySpace"
    with pytest.raises(DataIntegrityError, match="MySpace"):
        build_store(**tables)


def test_invalid_category_rejected():
    tables = sample_tables()
    tables["influencers"].loc[1, "category"] = "Gaming"
    with pytest.raises(DataIntegrityError, match="Gaming"):
        build_store(**tables)


def test_invalid_basis_rejected():
    tables = sample_tables()
    tables["payouts"].loc[0, "basis"] = "click"
    with pytest.raises(InvalidBasisError):
        build_store(**tables)


def test_negative_values_rejected():
    tables = sample_tables()
    tables["posts"].loc[2, "reach"] = -5
    with pytest.raises(DataIntegrityError, match="Negative reach"):
        build_store(**tables)


def test_fractional_counts_rejected():
    tables = sample_tables()
    tables["posts"]["reach"] = [1000, 0, 2.5]
    with pytest.raises(DataIntegrityError, match="Non-integer reach"):
        build_store(**tables)

    tables = sample_tables()
    tables["tracking"]["orders"] = [10, 1.5]
    with pytest.raises(DataIntegrityError, match="Non-integer orders in tracking"):
        build_store(**tables)

    tables = sample_tables()
    tables["payouts"]["orders"] = [10.25, None]
    with pytest.raises(DataIntegrityError, match="Non-integer orders in payouts"):
        build_store(**tables)


def test_whole_float_counts_accepted():
    tables = sample_tables()
    tables["posts"]["reach"] = [1000.0, 0.0, 5000.0]
    store = build_store(**tables)
    assert list(store.posts["reach"]) == [1000, 0, 5000]


def test_blank_post_platform_inherits_influencer_platform():
    tables = sample_tables()
    # HK01 is on Instagram; this post was cross-posted to YouTube
    tables["posts"]["platform"] = ["YouTube", None, None]

    store = build_store(**tables)
    assert list(store.posts["platform"]) == ["YouTube", "Instagram", "YouTube"]


def test_blank_post_platform_column_missing():
    tables = sample_tables()
    tables["posts"] = tables["posts"].drop(columns=["platform"])

    store = build_store(**tables)
    assert list(store.posts["platform"]) == ["Instagram", "Instagram", "YouTube"]


def test_explicit_post_platform_validated():
    tables = sample_tables()
    tables["posts"]["platform"] = [None, "MySpace", None]
    with pytest.raises(DataIntegrityError, match="MySpace"):
        build_store(**tables)
        build_store(**tables)


def test_stale_payout_uses_derived_value(caplog):
    tables = sample_tables()
    tables["payouts"].loc[0, "total_payout"] = 999.0

    with caplog.at_level(logging.WARNING):
        store = build_store(**tables)

    assert store.payouts.loc[0, "total_payout"] == 1000.0
    assert store.payouts.loc[0, "stored_total_payout"] == 999.0
    assert "disagrees" in caplog.text


def test_stale_payout_strict():
    tables = sample_tables()
    tables["payouts"].loc[0, "total_payout"] = 999.0
    with pytest.raises(DataIntegrityError, match="disagrees"):
        build_store(config=ReportConfig(strict_payouts=True), **tables)


def test_order_payout_falls_back_to_tracked_orders():
    tables = sample_tables()
    tables["payouts"] = tables["payouts"].drop(columns=["orders", "total_payout"])
    tables["payouts"].loc[1, "basis"] = "order"
    tables["payouts"].loc[1, "rate"] = 50.0

    store = build_store(**tables)
    # HK02 has 2 tracked orders
    assert list(store.payouts["total_payout"]) == [1000.0, 100.0]


def test_load_store_from_csv(tmp_path):
    for name, df in sample_tables().items():
        df.to_csv(tmp_path / f"{name}.csv", index=False)

    store = load_store(ReportConfig(data_dir=str(tmp_path)))

    assert len(store.influencers) == 2
    assert store.tracking["revenue"].sum() == 5998.0


def test_load_store_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_store(ReportConfig(data_dir=str(tmp_path)))
