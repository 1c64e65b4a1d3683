"""Tests for eew.cli: feed reading and end-to-end replay."""

import json

import pytest

from eew.cli import build_config, main, parse_args, read_feed


def dmdata(event_id, serial, regions, canceled=False):
    return {
        "eventId": event_id,
        "serialNo": str(serial),
        "body": {
            "isCanceled": canceled,
            "earthquake": {
                "arrivalTime": "2024-01-01T00:00:00Z",
                "hypocenter": {
                    "name": "Off Ibaraki",
                    "coordinate": {"latitude": {"value": "36.0"}, "longitude": {"value": "141.0"}},
                    "depth": {"value": "40"},
                    "accuracy": {"epicenters": ["4"]},
                },
            },
            "intensity": {
                "forecastMaxInt": {"from": "4", "to": "4"},
                "regions": [
                    {"code": c, "forecastMaxInt": {"from": v, "to": v}} for c, v in regions.items()
                ],
            },
        },
    }


@pytest.fixture
def feed(tmp_path):
    path = tmp_path / "feed.jsonl"
    lines = [
        json.dumps({"provider": "dmdata", "at": 0.0, "data": dmdata("E1", 1, {"R1": "3"})}),
        "not json",
        json.dumps({"provider": "dmdata", "at": 0.1, "data": dmdata("E2", 1, {"R1": "5+", "R2": "2"})}),
        json.dumps({"provider": "dmdata", "at": 0.2}),
        "",
    ]
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


class TestReadFeed:
    def test_skips_bad_lines(self, feed, caplog):
        entries = read_feed(feed)
        assert [e.data["eventId"] for e in entries] == ["E1", "E2"]
        assert "invalid JSON" in caplog.text

    def test_sorted_by_time(self, tmp_path):
        path = tmp_path / "feed.jsonl"
        path.write_text("\n".join([
            json.dumps({"at": 5, "data": {"n": 2}}),
            json.dumps({"at": 1, "data": {"n": 1}}),
        ]))
        entries = read_feed(path)
        assert [e.data["n"] for e in entries] == [1, 2]
        assert entries[0].provider == "dmdata"


class TestArgs:
    def test_overrides(self, tmp_path):
        args = parse_args(["feed.jsonl", "--table", "t.txt", "--show-low-accuracy", "--speed", "0"])
        config = build_config(args)
        assert config.travel_table_source == "t.txt"
        assert config.show_low_accuracy
        assert args.speed == 0


class TestMain:
    def test_replay_summary(self, feed, capsys):
        assert main([str(feed), "--speed", "0", "--quiet"]) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["merged_intensity"] == {"R1": "5 Upper", "R2": "2"}
        assert [e["event_id"] for e in summary["events"]] == ["E1", "E2"]
        assert summary["table_available"] is False

    def test_missing_feed(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.jsonl")]) == 1
        assert "Cannot read feed" in capsys.readouterr().err

    def test_invalid_config(self, feed, tmp_path, capsys):
        config = tmp_path / "eew.json"
        config.write_text(json.dumps({"intensity_threshold": "banana"}))
        assert main([str(feed), "--config", str(config)]) == 1
