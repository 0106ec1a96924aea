"""
Report Builder — Writes analysis results as a formatted Word document or
as JSON for storage alongside an assessment record.
"""

import json
import logging
import os
from datetime import datetime

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from .models import AdvancedAnalysisResult, AnalysisResult, FindingType

logger = logging.getLogger(__name__)

FINDING_COLORS = {
    FindingType.POSITIVE: RGBColor(0x16, 0xA3, 0x4A),
    FindingType.WARNING: RGBColor(0xCA, 0x8A, 0x04),
    FindingType.CONCERN: RGBColor(0xDC, 0x26, 0x26),
    FindingType.INFO: RGBColor(0x64, 0x74, 0x8B),
}

METRIC_LABELS = {
    "ocrConfidence": "Recognition confidence",
    "textDensity": "Text density",
    "contrastScore": "Contrast",
    "lineConsistency": "Line consistency",
    "letterSizeVariation": "Letter size consistency",
    "letterSlantConsistency": "Letter slant consistency",
    "wordSpacingConsistency": "Word spacing consistency",
    "baselineAlignment": "Baseline alignment",
}

INDICATOR_LABELS = {
    "letterFormation": "Letter formation",
    "lineAlignment": "Line alignment",
    "spacing": "Spacing",
    "consistency": "Consistency",
    "writingRisk": "Writing risk",
    "motorCoordinationRisk": "Motor coordination risk",
    "visualProcessingRisk": "Visual processing risk",
}


def _hex_to_rgb(color: str) -> RGBColor:
    return RGBColor.from_string(color.lstrip("#").upper())


def _ensure_dir(output_path: str):
    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)


def _add_score(doc: Document, result: AnalysisResult):
    label = result.label
    para = doc.add_paragraph()
    para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = para.add_run(f"{round(result.readability_score * 100)}%")
    run.bold = True
    run.font.size = Pt(36)
    run.font.color.rgb = _hex_to_rgb(label.color)
    para = doc.add_paragraph()
    para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = para.add_run(label.label)
    run.font.size = Pt(16)
    run.font.color.rgb = _hex_to_rgb(label.color)
    doc.add_paragraph(f"{result.word_count} words across {result.line_count} lines, "
                      f"recognition confidence {result.confidence:.0%}")


def _add_table(doc: Document, values: dict, labels: dict, heading: str):
    doc.add_heading(heading, level=2)
    table = doc.add_table(rows=1, cols=2)
    table.style = "Light List Accent 1"
    header = table.rows[0].cells
    header[0].text = "Measure"
    header[1].text = "Score"
    for key, value in values.items():
        cells = table.add_row().cells
        cells[0].text = labels.get(key, key)
        cells[1].text = f"{value:.2f}"


def _add_findings(doc: Document, result: AnalysisResult):
    doc.add_heading("Findings", level=2)
    for finding in result.findings:
        para = doc.add_paragraph(style="List Bullet")
        tag = para.add_run(f"{finding.type.value.upper()}: ")
        tag.bold = True
        tag.font.color.rgb = FINDING_COLORS[finding.type]
        para.add_run(finding.message)


def build_report(result: AnalysisResult, output_path: str, source_name: str | None = None):
    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    section = doc.sections[0]
    section.top_margin = Inches(1.0)
    section.bottom_margin = Inches(1.0)
    section.left_margin = Inches(1.0)
    section.right_margin = Inches(1.0)

    doc.add_heading("Handwriting Readability Report", level=1)
    subtitle = doc.add_paragraph(datetime.now().strftime("%B %d, %Y"))
    if source_name:
        subtitle.add_run(f"  |  {os.path.basename(source_name)}")
    for run in subtitle.runs:
        run.font.size = Pt(9)
        run.font.color.rgb = RGBColor(128, 128, 128)

    _add_score(doc, result)
    _add_table(doc, result.metrics, METRIC_LABELS, "Metrics")
    if isinstance(result, AdvancedAnalysisResult) and result.dysgraphia_indicators is not None:
        _add_table(doc, result.dysgraphia_indicators.to_dict(), INDICATOR_LABELS, "Writing Indicators")
    _add_findings(doc, result)

    if result.extracted_text:
        doc.add_heading("Recognized Text", level=2)
        for line in result.extracted_text.splitlines():
            if line.strip():
                doc.add_paragraph(line)

    _ensure_dir(output_path)
    doc.save(output_path)
    logger.info(f"Report saved to: {output_path}")


def write_json(result: AnalysisResult, output_path: str):
    _ensure_dir(output_path)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2)
    logger.info(f"JSON result saved to: {output_path}")
