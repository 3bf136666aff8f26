"""
Integration Tests for the omr-toolkit command line.
"""

import json

import pytest
from PIL import Image

from omr_toolkit.builder.output import render_page_image
from omr_toolkit.cli import EXIT_ERROR, EXIT_NOT_FOUND, EXIT_OK, main
from omr_toolkit.core.utils import save_questions


@pytest.fixture
def questions_file(tmp_path, sample_questions):
    path = tmp_path / "questions.json"
    save_questions(sample_questions, path)
    return path


@pytest.fixture
def generated(tmp_path, questions_file):
    out_dir = tmp_path / "out"
    code = main(["generate", str(questions_file), "--folio", "cli1", "--out-dir", str(out_dir)])
    assert code == EXIT_OK
    return out_dir


class TestGenerate:
    """Tests for ``omr-toolkit generate``."""

    def test_writes_all_artifacts(self, generated):
        for name in ("CLI1.pdf", "CLI1.map.json", "CLI1.variant.json", "CLI1.meta.json"):
            assert (generated / name).exists(), name
        assert (generated / "CLI1.pdf").read_bytes().startswith(b"%PDF-")

    def test_reused_variant_gives_identical_map(self, tmp_path, questions_file, generated):
        reused = tmp_path / "reused"
        main([
            "generate", str(questions_file), "--folio", "cli1", "--out-dir", str(reused),
            "--variant", str(generated / "CLI1.variant.json"),
        ])
        assert (reused / "CLI1.map.json").read_text() == (generated / "CLI1.map.json").read_text()

    def test_preview_png_per_page(self, tmp_path, questions_file):
        out_dir = tmp_path / "preview"
        main([
            "generate", str(questions_file), "--folio", "p", "--out-dir", str(out_dir),
            "--preview-dpi", "36", "--min-pages", "2",
        ])
        assert sorted(p.name for p in out_dir.glob("*.png")) == ["P_p1.png", "P_p2.png"]

    def test_missing_questions_file(self, tmp_path):
        assert main(["generate", str(tmp_path / "nope.json"), "--folio", "x"]) == EXIT_ERROR


class TestScan:
    """Tests for ``omr-toolkit scan`` and ``omr-toolkit read-qr``."""

    @pytest.fixture
    def scan_png(self, tmp_path, generated):
        image = render_page_image((generated / "CLI1.pdf").read_bytes(), 1, 150)
        path = tmp_path / "scan.png"
        image.save(path)
        return path

    def test_scan_writes_result_json(self, tmp_path, generated, scan_png):
        output = tmp_path / "result.json"
        code = main([
            "scan", str(scan_png), "--map", str(generated / "CLI1.map.json"),
            "--folio", "cli1", "--output", str(output),
        ])
        assert code == EXIT_OK
        payload = json.loads(output.read_text())
        assert payload["page_number"] == 1
        assert payload["qr_text"] == "EXAM:CLI1:P1"
        assert "QR does not match expected exam" not in payload["warnings"]
        assert all(a["opinion"] is None for a in payload["answers"])

    def test_read_qr_prints_payload(self, scan_png, capsys):
        assert main(["read-qr", str(scan_png)]) == EXIT_OK
        assert capsys.readouterr().out.strip() == "EXAM:CLI1:P1"

    def test_read_qr_not_found(self, tmp_path):
        blank = tmp_path / "blank.png"
        Image.new("RGB", (300, 400), "white").save(blank)
        assert main(["read-qr", str(blank)]) == EXIT_NOT_FOUND

    def test_unreadable_image(self, tmp_path, generated):
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"not an image")
        assert main(["scan", str(bad), "--map", str(generated / "CLI1.map.json"), "--page", "1"]) == EXIT_ERROR
