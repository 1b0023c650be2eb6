import json

from rep_telemetry.main import main

from .conftest import FRAME_INTERVAL, knee_sweep


def stdout_records(capsys):
    return [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]


def test_demo_mode_counts_synthetic_reps(capsys):
    assert main(["--exercise", "knee_flexion", "--mode", "demo", "--frames", "100"]) == 0
    records = stdout_records(capsys)
    assert len(records) == 100
    assert records[-1]["repCount"] == 1
    assert sum(r["repJustCompleted"] for r in records) == 1


def test_replay_mode(tmp_path, capsys, knee_frame):
    recording = tmp_path / "session.jsonl"
    with open(recording, "w") as f:
        for i, angle in enumerate(knee_sweep()):
            f.write(json.dumps(knee_frame(angle, i * FRAME_INTERVAL).to_dict()) + "\n")
    assert main(["--mode", "replay", "--input", str(recording)]) == 0
    records = stdout_records(capsys)
    assert len(records) == len(knee_sweep())
    assert records[-1]["repCount"] == 1


def test_replay_requires_input(capsys):
    assert main(["--mode", "replay"]) == 1
    assert "--input is required" in capsys.readouterr().err


def test_malformed_recording_is_reported(tmp_path, capsys):
    recording = tmp_path / "broken.jsonl"
    recording.write_text(json.dumps({"timestamp": 0.0, "landmarks": [[0.5, 0.5, 0.9]]}) + "\n")
    assert main(["--mode", "replay", "--input", str(recording)]) == 1
    assert "broken.jsonl:1" in capsys.readouterr().err


def test_missing_config_file(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.json")]) == 1
    assert "Error loading exercise profile" in capsys.readouterr().err
