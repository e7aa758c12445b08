import json

import pandas as pd
import pytest

from influencer_roi.cli import main


def write_sample_data(data_dir):
    pd.DataFrame(
        [
            {"id": "HK01", "name": "Alice", "category": "Fitness", "gender": "F",
             "follower_count": 50000, "platform": "Instagram"},
            {"id": "HK02", "name": "Bob", "category": "Nutrition", "gender": "M",
             "follower_count": 120000, "platform": "YouTube"},
        ]
    ).to_csv(data_dir / "influencers.csv", index=False)
    pd.DataFrame(
        [
            {"post_id": 1, "influencer_id": "HK01", "platform": "Instagram", "date": "2024-01-01",
             "url": "https://post/1", "caption": "c", "reach": 1000, "likes": 50, "comments": 10},
            {"post_id": 2, "influencer_id": "HK01", "platform": "Instagram", "date": "2024-01-02",
             "url": "https://post/2", "caption": "c", "reach": 0, "likes": 5, "comments": 2},
        ]
    ).to_csv(data_dir / "posts.csv", index=False)
    pd.DataFrame(
        [
            {"source": "influencer", "campaign": "camp_1", "influencer_id": "HK01", "user_id": 1,
             "product": "Protein", "date": "2024-01-03", "orders": 10, "revenue": 5000.0},
            {"source": "influencer", "campaign": "camp_1", "influencer_id": "HK02", "user_id": 2,
             "product": "Snack", "date": "2024-01-04", "orders": 1, "revenue": 499.0},
        ]
    ).to_csv(data_dir / "tracking.csv", index=False)
    pd.DataFrame(
        [{"influencer_id": "HK01", "basis": "order", "rate": 100.0, "orders": 10, "total_payout": 1000.0}]
    ).to_csv(data_dir / "payouts.csv", index=False)


def test_cli_prints_roi_view(tmp_path, capsys):
    write_sample_data(tmp_path)

    assert main(["--data-dir", str(tmp_path), "--view", "roi", "--log-level", "WARNING"]) == 0

    out = capsys.readouterr().out
    assert "HK01" in out
    assert "4.0" in out


def test_cli_summary_json(tmp_path, capsys):
    write_sample_data(tmp_path)

    assert main(["--data-dir", str(tmp_path), "--view", "summary", "--log-level", "WARNING"]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["total_revenue"] == 5499.0
    assert summary["total_payout"] == 1000.0
    assert summary["roi"] == 4.5


def test_cli_writes_outputs(tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    write_sample_data(data_dir)
    out_dir = tmp_path / "reports"

    code = main([
        "--data-dir", str(data_dir), "--view", "tracking", "--product", "Protein",
        "--output-dir", str(out_dir), "--log-level", "WARNING",
    ])

    assert code == 0
    df = pd.read_csv(out_dir / "tracking.csv")
    assert list(df["influencer_id"]) == ["HK01"]


def test_cli_reports_errors(tmp_path):
    write_sample_data(tmp_path)

    assert main(["--data-dir", str(tmp_path), "--view", "tracking", "--platform", "MySpace",
                 "--log-level", "ERROR"]) == 1
    assert main(["--data-dir", str(tmp_path / "missing"), "--log-level", "ERROR"]) == 1


def test_cli_limit(tmp_path, capsys):
    write_sample_data(tmp_path)

    assert main(["--data-dir", str(tmp_path), "--view", "posts", "--limit", "1",
                 "--log-level", "WARNING"]) == 0
    out = capsys.readouterr().out
    assert "https://post/1" in out
    assert "https://post/2" not in out

    for view in ("influencers", "posts", "tracking", "products"):
        assert main(["--data-dir", str(tmp_path), "--view", view, "--limit", "-1",
                     "--log-level", "ERROR"]) == 1


def test_cli_rejects_bad_log_level(tmp_path):
    write_sample_data(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(["--data-dir", str(tmp_path), "--log-level", "LOUD"])
    assert excinfo.value.code == 2

    # level names are case-insensitive on the command line
    assert main(["--data-dir", str(tmp_path), "--view", "roi", "--log-level", "warning"]) == 0


def test_cli_bad_log_level_from_env(tmp_path, monkeypatch, capsys):
    write_sample_data(tmp_path)
    monkeypatch.setenv("INFLUENCER_ROI_LOG_LEVEL", "LOUD")

    assert main(["--data-dir", str(tmp_path)]) == 1
    assert "LOUD" in capsys.readouterr().err


def test_cli_unsupported_table_file(tmp_path, monkeypatch):
    write_sample_data(tmp_path)
    (tmp_path / "influencers.json").write_text("{}")
    monkeypatch.setenv("INFLUENCER_ROI_INFLUENCERS_FILE", "influencers.json")

    assert main(["--data-dir", str(tmp_path), "--log-level", "ERROR"]) == 1


def test_cli_unsupported_output_format_from_env(tmp_path, monkeypatch):
    write_sample_data(tmp_path)
    monkeypatch.setenv("INFLUENCER_ROI_OUTPUT_FORMATS", "xlsx")

    assert main(["--data-dir", str(tmp_path), "--view", "roi", "--output-dir", str(tmp_path / "out"),
                 "--log-level", "ERROR"]) == 1
