"""Unit tests for findings generation."""

import pytest

from handwriting_analyzer.findings import generate_advanced_findings, generate_findings
from handwriting_analyzer.models import (DysgraphiaIndicators, FindingType, ImageQualityMetrics,
                                         RecognitionResult)

from conftest import make_recognition


def metrics(density=0.5, lines=0.5):
    return ImageQualityMetrics(contrast_score=0.5, text_density=density, line_consistency=lines)


def indicators(level=0.65, risk=0.0):
    return DysgraphiaIndicators(letter_formation=level, line_alignment=level, spacing=level,
                                consistency=level, writing_risk=risk,
                                motor_coordination_risk=risk, visual_processing_risk=risk)


class TestGenerateFindings:
    """Tests for the basic findings cascade."""

    def test_all_rules_fire_in_order(self):
        recognition = make_recognition([0.9] * 50, line_count=6)
        findings = generate_findings(0.85, recognition, metrics(density=0.8, lines=0.9))

        assert [f.type for f in findings] == [FindingType.POSITIVE] * 4 + [FindingType.INFO]
        assert findings[0].message.startswith("Excellent handwriting clarity")
        assert findings[1].message == "Consistent line spacing detected"
        assert findings[2].message == "Good letter spacing and word formation"
        assert findings[3].message == "Characters are well-formed and recognizable"
        assert findings[4].message == "Detected approximately 50 words across 6 lines"

    def test_band_only_when_everything_is_mid_range(self):
        recognition = RecognitionResult(confidence=0.5, word_count=0)
        findings = generate_findings(0.1, recognition, metrics(density=0.5, lines=0.5))

        assert len(findings) == 1
        assert findings[0].type == FindingType.CONCERN

    @pytest.mark.parametrize("score, expected_type, prefix", [
        (0.8, FindingType.POSITIVE, "Excellent"),
        (0.6, FindingType.POSITIVE, "Good"),
        (0.59, FindingType.WARNING, "Moderate"),
        (0.4, FindingType.WARNING, "Moderate"),
        (0.39, FindingType.CONCERN, "Low"),
    ])
    def test_score_bands(self, score, expected_type, prefix):
        findings = generate_findings(score, make_recognition([]), metrics())
        assert findings[0].type == expected_type
        assert findings[0].message.startswith(prefix)

    def test_low_signals_emit_warnings_and_info(self):
        recognition = make_recognition([0.2] * 4, line_count=1)
        findings = generate_findings(0.45, recognition, metrics(density=0.2, lines=0.3))

        assert [(f.type, f.message) for f in findings[1:4]] == [
            (FindingType.WARNING, "Irregular line spacing - lines may be uneven"),
            (FindingType.INFO, "Sparse text detected - ensure image captures full writing"),
            (FindingType.WARNING, "Some characters are difficult to recognize"),
        ]

    def test_boundaries_between_bands_emit_nothing(self):
        """Line consistency 0.4 and density 0.3 sit in the silent middle band."""
        recognition = make_recognition([0.4] * 3)
        findings = generate_findings(0.5, recognition, metrics(density=0.3, lines=0.4))
        assert len(findings) == 2
        assert findings[1].type == FindingType.INFO

    def test_serializes_type_as_string(self):
        finding = generate_findings(0.9, make_recognition([]), metrics())[0]
        assert finding.to_dict() == {"type": "positive",
                                     "message": "Excellent handwriting clarity - easily readable"}


class TestGenerateAdvancedFindings:
    """Tests for the dysgraphia-oriented findings."""

    def test_strong_indicators(self):
        recognition = make_recognition([0.9] * 12, line_count=3)
        findings = generate_advanced_findings(0.9, recognition, metrics(), indicators(level=0.9))

        assert [f.type for f in findings] == [FindingType.POSITIVE] * 5 + [FindingType.INFO]
        assert findings[-1].message == "Analyzed 12 words across 3 lines"

    def test_risk_at_cap_adds_practice_note(self):
        findings = generate_advanced_findings(0.5, make_recognition([]), metrics(),
                                              indicators(level=0.6, risk=0.4))
        assert findings[-1].type == FindingType.INFO
        assert findings[-1].message.startswith("Some areas may benefit")

    def test_high_risk_is_a_concern(self):
        findings = generate_advanced_findings(0.3, make_recognition([]), metrics(),
                                              indicators(level=0.3, risk=0.6))
        assert findings[0].type == FindingType.CONCERN
        assert [f.type for f in findings[1:5]] == [FindingType.WARNING] * 4
        assert findings[5].type == FindingType.CONCERN
