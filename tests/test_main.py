"""Tests for the command-line entry point."""

import json

import pytest

import main
from handwriting_analyzer.errors import RecognitionError
from handwriting_analyzer.pipeline import analyze_handwriting

from conftest import StubAdapter, make_recognition


@pytest.fixture
def sample_png(tmp_path, png_bytes):
    path = tmp_path / "notebook.png"
    path.write_bytes(png_bytes(size=(60, 40)))
    return path


@pytest.fixture
def stub_pipeline(monkeypatch):
    """Route the CLI's single-image analysis through a stub adapter."""
    recognition = make_recognition([0.9] * 6, line_count=2)

    def fake_analyze(data, on_progress=None, engine="tesseract", preprocess=False):
        return analyze_handwriting(data, on_progress=on_progress, adapter=StubAdapter(recognition))

    monkeypatch.setattr(main, "analyze_handwriting", fake_analyze)


def test_missing_input(tmp_path, capsys):
    assert main.main(["-i", str(tmp_path / "nope.png")]) == 1
    assert "Input file not found" in capsys.readouterr().err


def test_docx_requires_output_dir(sample_png, capsys):
    assert main.main(["-i", str(sample_png), "--docx"]) == 1
    assert "--docx requires --output-dir" in capsys.readouterr().err


def test_rejects_unsupported_format(tmp_path, png_bytes):
    path = tmp_path / "drawing.gif"
    path.write_bytes(png_bytes(fmt="GIF"))
    assert main.main(["-i", str(path)]) == 1


def test_single_image_writes_outputs(sample_png, tmp_path, stub_pipeline, capsys):
    out_dir = tmp_path / "results"

    assert main.main(["-i", str(sample_png), "-o", str(out_dir), "--docx"]) == 0

    data = json.loads((out_dir / "notebook.json").read_text(encoding="utf-8"))
    assert data["wordCount"] == 6
    assert (out_dir / "notebook.docx").exists()
    assert "Readability:" in capsys.readouterr().out


def test_single_image_analysis_failure(sample_png, monkeypatch):
    def failing(data, **kwargs):
        raise RecognitionError("Failed to analyze handwriting: engine unavailable")

    monkeypatch.setattr(main, "analyze_handwriting", failing)
    assert main.main(["-i", str(sample_png)]) == 1


def test_multiple_images_use_batch(sample_png, tmp_path, monkeypatch, capsys):
    second = tmp_path / "second.png"
    second.write_bytes(sample_png.read_bytes())
    recognition = make_recognition([0.8] * 3, line_count=1)
    real_batch = main.analyze_batch

    def fake_batch(images, max_workers, engine, preprocess, advanced):
        return real_batch(images, max_workers=max_workers, advanced=advanced,
                          adapter_factory=lambda: StubAdapter(recognition))

    monkeypatch.setattr(main, "analyze_batch", fake_batch)

    assert main.main(["-i", str(sample_png), str(second), "--workers", "2", "--advanced"]) == 0
    out = capsys.readouterr().out
    assert "notebook.png" in out and "second.png" in out


def test_output_stems_disambiguate_repeated_names():
    paths = ["a/page.png", "b/page.png", "c/page.jpg", "notes.png"]
    assert main.output_stems(paths) == ["page", "page-2", "page-3", "notes"]


def test_same_named_inputs_write_separate_outputs(tmp_path, png_bytes, monkeypatch):
    first_dir, second_dir = tmp_path / "a", tmp_path / "b"
    first_dir.mkdir()
    second_dir.mkdir()
    (first_dir / "page.png").write_bytes(png_bytes(size=(60, 40)))
    (second_dir / "page.png").write_bytes(png_bytes(size=(60, 40), color=(0, 0, 0)))
    recognition = make_recognition([0.8] * 3, line_count=1)
    real_batch = main.analyze_batch

    def fake_batch(images, max_workers, engine, preprocess, advanced):
        return real_batch(images, max_workers=max_workers, advanced=advanced,
                          adapter_factory=lambda: StubAdapter(recognition))

    monkeypatch.setattr(main, "analyze_batch", fake_batch)
    out_dir = tmp_path / "out"

    assert main.main(["-i", str(first_dir / "page.png"), str(second_dir / "page.png"),
                      "-o", str(out_dir)]) == 0

    assert sorted(p.name for p in out_dir.iterdir()) == ["page-2.json", "page.json"]
