"""
Findings — Turns the readability score and its component metrics into a
short, ordered list of categorized observations.
"""

from .models import (DysgraphiaIndicators, Finding, FindingType, ImageQualityMetrics,
                     RecognitionResult)

HIGH = 0.7
LOW = 0.4
SPARSE_DENSITY = 0.3

DEGRADED_MESSAGE = "Image could not be fully analyzed - quality metrics are estimated"


def _score_band(score: float, messages: tuple[str, str, str, str]) -> Finding:
    excellent, good, moderate, low = messages
    if score >= 0.8:
        return Finding(FindingType.POSITIVE, excellent)
    if score >= 0.6:
        return Finding(FindingType.POSITIVE, good)
    if score >= 0.4:
        return Finding(FindingType.WARNING, moderate)
    return Finding(FindingType.CONCERN, low)


def _high_low(value: float, high_message: str, low_message: str,
              low_type: FindingType = FindingType.WARNING, low: float = LOW) -> list[Finding]:
    if value >= HIGH:
        return [Finding(FindingType.POSITIVE, high_message)]
    if value < low:
        return [Finding(low_type, low_message)]
    return []


def generate_findings(score: float, recognition: RecognitionResult,
                      metrics: ImageQualityMetrics) -> list[Finding]:
    """
    Every applicable rule fires, in fixed order: score band, line spacing,
    text density, character recognition, word count.
    """
    findings = [_score_band(score, (
        "Excellent handwriting clarity - easily readable",
        "Good handwriting clarity - mostly readable",
        "Moderate readability - some characters may be unclear",
        "Low readability - handwriting may need attention",
    ))]
    findings += _high_low(metrics.line_consistency,
                          "Consistent line spacing detected",
                          "Irregular line spacing - lines may be uneven")
    findings += _high_low(metrics.text_density,
                          "Good letter spacing and word formation",
                          "Sparse text detected - ensure image captures full writing",
                          low_type=FindingType.INFO, low=SPARSE_DENSITY)
    findings += _high_low(recognition.confidence,
                          "Characters are well-formed and recognizable",
                          "Some characters are difficult to recognize")
    if recognition.word_count > 0:
        findings.append(Finding(FindingType.INFO,
                                f"Detected approximately {recognition.word_count} words "
                                f"across {recognition.line_count} lines"))
    return findings


def generate_advanced_findings(score: float, recognition: RecognitionResult,
                               metrics: ImageQualityMetrics,
                               indicators: DysgraphiaIndicators) -> list[Finding]:
    findings = [_score_band(score, (
        "Excellent handwriting clarity - letters are well-formed and easily readable",
        "Good handwriting clarity - mostly readable with clear letter formation",
        "Moderate readability - some letters may be unclear or inconsistent",
        "Handwriting shows signs that may benefit from additional support",
    ))]
    findings += _high_low(indicators.letter_formation,
                          "Letters are consistently well-formed with proper proportions",
                          "Letter formation shows variation - may indicate developing fine motor skills")
    findings += _high_low(indicators.line_alignment,
                          "Good baseline alignment - writing follows lines consistently",
                          "Words drift above or below the baseline - spatial awareness may need support")
    findings += _high_low(indicators.spacing,
                          "Consistent spacing between words and letters",
                          "Irregular spacing between words - common in developing writers")
    findings += _high_low(indicators.consistency,
                          "Writing shows consistent size and slant throughout",
                          "Letter sizes and slant vary - may benefit from handwriting practice")

    if indicators.writing_risk >= 0.6:
        findings.append(Finding(FindingType.CONCERN,
                                "Writing patterns suggest potential challenges - consider consulting a specialist"))
    elif indicators.writing_risk >= 0.4:
        findings.append(Finding(FindingType.INFO,
                                "Some areas may benefit from targeted practice or support"))

    if recognition.word_count > 0:
        findings.append(Finding(FindingType.INFO,
                                f"Analyzed {recognition.word_count} words across {recognition.line_count} lines"))
    return findings


def degraded_finding() -> Finding:
    return Finding(FindingType.WARNING, DEGRADED_MESSAGE)
