import json
import logging

import pandas as pd
import pytest

from ewgate.cli import main
from ewgate.logging import LogConfig, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logging(monkeypatch):
    monkeypatch.delenv("EWGATE_CONFIG", raising=False)
    monkeypatch.delenv("EWGATE_LOG_LEVEL", raising=False)
    root = logging.getLogger()
    level = root.level
    yield
    # drop the handlers setup_logging installed; they point at captured streams
    for h in list(root.handlers):
        if type(h) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(h)
    root.setLevel(level)


def _write_csv(path, closes):
    pd.DataFrame(
        {
            "time": pd.date_range("2025-01-01", periods=len(closes), freq="D").strftime("%Y-%m-%d %H:%M:%S"),
            "open": closes,
            "high": closes,
            "low": closes,
            "close": closes,
            "volume": [1.0] * len(closes),
        }
    ).to_csv(path, index=False)


def test_cli_runs_backtest_and_exports(tmp_path, capsys):
    csv = tmp_path / "bars.csv"
    _write_csv(csv, [100.0 + i for i in range(120)])
    report = tmp_path / "out" / "report.json"
    trades = tmp_path / "out" / "trades.csv"

    code = main(
        [
            "--csv", str(csv),
            "--trend_period", "50",
            "--export_report", str(report),
            "--export_trades", str(trades),
            "--show_analysis",
            "--log_level", "warning",
        ]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert 'strategy="High-Reward Elliott Wave Strategy"' in out
    assert "bars=120" in out
    rep = json.loads(report.read_text())
    assert rep["trades"] == 0
    assert rep["initial_cash"] == 10_000.0
    assert "entry_idx" in pd.read_csv(trades).columns


def test_cli_reads_config_file(tmp_path, capsys):
    csv = tmp_path / "bars.csv"
    _write_csv(csv, [100.0 + i for i in range(60)])
    cfg = tmp_path / "cfg.toml"
    cfg.write_text('[strategy]\nname = "custom"\ntrend_period = 20\n\n[log]\nlevel = "error"\n')

    assert main(["--csv", str(csv), "--config", str(cfg)]) == 0
    assert 'strategy="custom"' in capsys.readouterr().out


def test_cli_empty_csv(tmp_path):
    csv = tmp_path / "empty.csv"
    csv.write_text("time,open,high,low,close,volume\n")
    assert main(["--csv", str(csv), "--log_level", "critical"]) == 2


def test_json_logging_flattens_extras(capsys):
    setup_logging(LogConfig(level="debug", json=True))
    get_logger("ewgate.test").info("entry idx=%d", 3, extra={"index": 3, "strategy": "s"})
    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["msg"] == "entry idx=3"
    assert payload["level"] == "info"
    assert payload["name"] == "ewgate.test"
    assert payload["index"] == 3
    assert payload["strategy"] == "s"


def test_cli_trades_a_clean_impulse(tmp_path, capsys, clean_impulse_closes):
    csv = tmp_path / "bars.csv"
    _write_csv(csv, clean_impulse_closes)
    cfg = tmp_path / "cfg.toml"
    cfg.write_text(
        '[strategy]\ntrend_period = 20\n\n'
        '[analyzer]\ncompression = "none"\n\n'
        '[analyzer.swing]\nkind = "zigzag"\npct = 5.0\n\n'
        '[log]\nlevel = "error"\n'
    )
    trades = tmp_path / "trades.csv"

    assert main(["--csv", str(csv), "--config", str(cfg), "--export_trades", str(trades)]) == 0
    assert "trades=1 " in capsys.readouterr().out
    rows = pd.read_csv(trades)
    assert rows[["entry_idx", "exit_idx"]].values.tolist() == [[46, 75]]
    assert rows["reason"].tolist() == ["momentum_reversal"]
