"""Tests for .docx and JSON report output."""

import json

from docx import Document

from handwriting_analyzer.pipeline import analyze_handwriting, analyze_handwriting_advanced
from handwriting_analyzer.report_builder import build_report, write_json

from conftest import StubAdapter


def test_docx_report_contents(tmp_path, clean_page, fluent_recognition):
    result = analyze_handwriting(clean_page, adapter=StubAdapter(fluent_recognition))
    output = tmp_path / "reports" / "sample.docx"

    build_report(result, str(output), source_name="notebook.jpg")

    doc = Document(str(output))
    text = "\n".join(p.text for p in doc.paragraphs)
    assert "Handwriting Readability Report" in text
    assert "98%" in text
    assert "Excellent" in text
    assert "POSITIVE: Consistent line spacing detected" in text
    assert "word0 word1" in text
    assert doc.tables[0].rows[1].cells[0].text == "Recognition confidence"


def test_docx_report_includes_indicators(tmp_path, clean_page, fluent_recognition):
    result = analyze_handwriting_advanced(clean_page, adapter=StubAdapter(fluent_recognition))
    output = tmp_path / "advanced.docx"

    build_report(result, str(output))

    doc = Document(str(output))
    assert len(doc.tables) == 2
    assert doc.tables[1].rows[1].cells[0].text == "Letter formation"


def test_json_output(tmp_path, clean_page, fluent_recognition):
    result = analyze_handwriting(clean_page, adapter=StubAdapter(fluent_recognition))
    output = tmp_path / "out" / "sample.json"

    write_json(result, str(output))

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["readabilityScore"] == 0.98
    assert data["wordCount"] == 20
    assert set(data["metrics"]) == {"ocrConfidence", "textDensity", "contrastScore", "lineConsistency"}
