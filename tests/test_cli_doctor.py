from __future__ import annotations

import json

from memory_recall.cli.main import build_parser, main


def test_doctor_report_ok(tmp_path):
    out = tmp_path / "doctor.json"
    assert main(["doctor", "--runs", "3", "--report-out", str(out)]) == 0

    report = json.loads(out.read_text(encoding="utf-8"))
    assert report["summary"]["ok"] is True
    assert len(report["summary"]["report_signature"]) == 16
    names = {c["name"] for c in report["checks"]}
    assert {
        "fake_provider_deterministic",
        "cache_hit_on_repeat",
        "batch_matches_single",
        "strict_determinism_ranking",
        "fallback_to_offline",
    } <= names
    assert all(c["ok"] for c in report["checks"])


def test_doctor_prints_when_no_report_path(capsys):
    assert main(["doctor", "--runs", "1", "--dimension", "64"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["environment"]["fake_dimension"] == 64


def test_parser_requires_subcommand():
    args = build_parser().parse_args(["doctor", "--strict"])
    assert args.strict is True
    assert args.runs == 20
