"""
Handwriting Readability Analyzer

Scores how legible a handwriting sample is by combining text-recognition
confidence with pixel-level image quality signals, and explains the score
with categorized findings.
"""

__version__ = "1.0.0"
