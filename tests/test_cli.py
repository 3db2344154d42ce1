"""
Tests for scantron_reader.cli

Test Coverage:
- decode / inspect / grade commands through typer's CliRunner
- config and points errors exit with code 2
"""
from typer.testing import CliRunner

from scantron_reader.cli import app

runner = CliRunner()


def _write_scan(path, *streams):
    path.write_text("\n".join(streams) + "\n", encoding="utf-8")
    return str(path)


def test_decode_writes_single_answer_file(tmp_path, full_sketch):
    scan = _write_scan(tmp_path / "scan.txt", full_sketch.to_stream(compress=True))
    out = tmp_path / "answers.txt"
    result = runner.invoke(app, ["decode", scan, "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_bytes().decode("utf-8") == "123456789, 231--,   '" + "12345" * 10 + "'\r\n"


def test_decode_multiple_with_question_override(tmp_path, full_sketch):
    scan = _write_scan(tmp_path / "scan.txt", full_sketch.to_stream())
    out = tmp_path / "multi.txt"
    result = runner.invoke(app, ["decode", scan, "-o", str(out), "--multiple", "-q", "10"])
    assert result.exit_code == 0, result.output
    lines = out.read_bytes().decode("utf-8").split("\r\n")
    assert lines[0] == "123456789, 231--,5, '    5    5'"
    assert lines[4] == "         ,      ,1, '1    1    '"


def test_decode_skips_bad_cards(tmp_path, sketch):
    scan = _write_scan(tmp_path / "scan.txt", "a#", sketch.to_stream())
    out = tmp_path / "answers.txt"
    result = runner.invoke(app, ["decode", scan, "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert "Card 1 skipped" in result.output
    assert out.read_bytes().decode("utf-8").count("\r\n") == 1


def test_decode_fails_when_nothing_decodes(tmp_path):
    scan = _write_scan(tmp_path / "scan.txt", "a#")
    result = runner.invoke(app, ["decode", scan, "-o", str(tmp_path / "x.txt")])
    assert result.exit_code == 2


def test_bad_config_exits_with_code_2(tmp_path, sketch):
    scan = _write_scan(tmp_path / "scan.txt", sketch.to_stream())
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("nonsense: 1\n", encoding="utf-8")
    result = runner.invoke(app, ["decode", scan, "-c", str(cfg)])
    assert result.exit_code == 2
    assert "Failed to load config" in result.output


def test_inspect_lists_cards(tmp_path, full_sketch):
    scan = _write_scan(tmp_path / "scan.txt", full_sketch.to_stream())
    result = runner.invoke(app, ["inspect", scan])
    assert result.exit_code == 0, result.output
    assert "123456789" in result.output


def test_grade_against_key(tmp_path, full_sketch, make_sketch):
    key = make_sketch()
    key.set(11, 10)    # version 2, like the student card
    for q in range(1, 51):
        key.mark_answer(q, 1)
    key_txt = _write_scan(tmp_path / "key.txt", key.to_stream())
    scan = _write_scan(tmp_path / "scan.txt", full_sketch.to_stream())
    out = tmp_path / "results.csv"
    result = runner.invoke(app, ["grade", scan, "--key", key_txt, "-o", str(out)])
    assert result.exit_code == 0, result.output
    last = out.read_text(encoding="utf-8").splitlines()[1].split(",")
    assert last[1] == "123456789"
    assert last[-2:] == ["10", "50"]


def test_string_threshold_config_exits_with_code_2(tmp_path, sketch):
    scan = _write_scan(tmp_path / "scan.txt", sketch.to_stream())
    cfg = tmp_path / "card.yaml"
    cfg.write_text('decoder:\n  fill_threshold: "54"\n', encoding="utf-8")
    result = runner.invoke(app, ["decode", scan, "-c", str(cfg)])
    assert result.exit_code == 2
    assert "Failed to load config" in result.output


def _grade_setup(tmp_path, full_sketch, make_sketch):
    key = make_sketch()
    key.set(11, 10)
    for q in range(1, 51):
        key.mark_answer(q, 1)
    key_txt = _write_scan(tmp_path / "key.txt", key.to_stream())
    scan = _write_scan(tmp_path / "scan.txt", full_sketch.to_stream())
    return scan, key_txt


def test_grade_with_point_weights(tmp_path, full_sketch, make_sketch):
    scan, key_txt = _grade_setup(tmp_path, full_sketch, make_sketch)
    out = tmp_path / "results.csv"
    result = runner.invoke(app, ["grade", scan, "--key", key_txt, "-o", str(out),
                                 "--points", "2", "--question-points", "1=5"])
    assert result.exit_code == 0, result.output
    last = out.read_text(encoding="utf-8").splitlines()[1].split(",")
    # questions 1, 6, ..., 46 are right: 5 + 9 * 2 out of 5 + 49 * 2
    assert last[-2:] == ["23", "103"]


def test_grade_points_from_config(tmp_path, full_sketch, make_sketch):
    scan, key_txt = _grade_setup(tmp_path, full_sketch, make_sketch)
    cfg = tmp_path / "card.yaml"
    cfg.write_text("grading:\n  question_points:\n    6: 3\n", encoding="utf-8")
    out = tmp_path / "results.csv"
    result = runner.invoke(app, ["grade", scan, "--key", key_txt, "-o", str(out), "-c", str(cfg)])
    assert result.exit_code == 0, result.output
    last = out.read_text(encoding="utf-8").splitlines()[1].split(",")
    assert last[-2:] == ["12", "52"]


def test_grade_rejects_malformed_question_points(tmp_path, full_sketch, make_sketch):
    scan, key_txt = _grade_setup(tmp_path, full_sketch, make_sketch)
    result = runner.invoke(app, ["grade", scan, "--key", key_txt, "-o", str(tmp_path / "r.csv"),
                                 "--question-points", "7"])
    assert result.exit_code == 2
    assert "Invalid points" in result.output


def test_malformed_yaml_config_exits_with_code_2(tmp_path, sketch):
    scan = _write_scan(tmp_path / "scan.txt", sketch.to_stream())
    cfg = tmp_path / "card.yaml"
    cfg.write_text("decoder: [fill_threshold\n", encoding="utf-8")
    result = runner.invoke(app, ["decode", scan, "-c", str(cfg)])
    assert result.exit_code == 2
    assert "Failed to load config" in result.output
