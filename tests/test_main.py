"""
Tests for the command-line host.
"""

import json

import pymupdf
import pytest

import main
from config.settings_manager import SettingsManager


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, settings_path):
    """Keep the CLI away from the user's application data directory."""
    monkeypatch.setattr(main, "SettingsManager", lambda: SettingsManager(settings_path))


class TestInfoCommand:
    """`info` subcommand."""

    def test_prints_metadata(self, simple_package, capsys):
        assert main.main(["info", str(simple_package)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["slideCount"] == 1
        assert data["title"] == "Deck Title"

    def test_missing_file(self, tmp_path):
        assert main.main(["info", str(tmp_path / "missing.pptx")]) == 2


class TestConvertCommand:
    """`convert` subcommand."""

    def test_writes_pdf_next_to_input(self, three_slide_pptx):
        assert main.main(["convert", str(three_slide_pptx)]) == 0
        output = three_slide_pptx.with_suffix(".pdf")
        with pymupdf.open(output) as doc:
            assert doc.page_count == 3

    def test_explicit_output_and_remembered_dir(self, simple_package, tmp_path, settings_path):
        output = tmp_path / "out" / "result.pdf"
        assert main.main(["convert", str(simple_package), "-o", str(output), "--workers", "2"]) == 0
        assert output.read_bytes()[:4] == b"%PDF"

        saved = json.loads(settings_path.read_text(encoding="utf-8"))
        assert saved["last_output_dir"] == str(output.parent.resolve())
        assert saved["render_workers"] == 1

    def test_run_flags_are_not_persisted(self, simple_package, tmp_path, settings_path):
        output = tmp_path / "flags.pdf"
        args = ["convert", str(simple_package), "-o", str(output), "--workers", "0", "--skip-bad-images"]
        assert main.main(args) == 0

        saved = json.loads(settings_path.read_text(encoding="utf-8"))
        assert saved["render_workers"] == 1
        assert saved["skip_undecodable_media"] is False

    def test_failure_exit_code(self, tmp_path):
        missing = tmp_path / "missing.pptx"
        assert main.main(["convert", str(missing), "--retries", "0"]) == 2
        assert not missing.with_suffix(".pdf").exists()

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            main.main([])
