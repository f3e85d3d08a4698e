"""Best-effort parser for structured canvas analysis replies.

The model is asked to answer with ``# QUALITY SCORES``, ``# SECTION
RECOMMENDATIONS`` and ``# OVERALL RECOMMENDATIONS`` blocks. Models drift from
the requested format, so nothing here raises: a block that cannot be read
yields an empty result and the caller falls back to the raw text.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field

LOGGER = logging.getLogger("canvas_relay.analysis.parser")

# Top-level "# TITLE" headings only; "## Name" sub-headings stay inside their block.
_TOP_HEADING = re.compile(r"(?:^|\n)\s*#\s+(?!#)")
# Tried in order; the first pattern that matches anything wins.
SCORE_PATTERNS = (
    re.compile(r"-\s*(.*?):\s*(\d+)%"),
    re.compile(r"([^\n:]+):\s*(\d+)%"),
    re.compile(r"([^\n:]+)\s*-\s*(\d+)%"),
)
_SUBSECTION = re.compile(r"^##\s*(.+?)\s*$", re.MULTILINE)
_NUMBERED = re.compile(r"^\s*\d+\.\s*([^\n]+)", re.MULTILINE)

@dataclass
class CanvasAnalysis:
    scores: dict[str, int] = field(default_factory=dict)
    section_recommendations: dict[str, str] = field(default_factory=dict)
    overall_recommendations: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.scores or self.section_recommendations or self.overall_recommendations)

def score_band(score: int) -> str:
    """Return the display band for a quality score."""
    if score >= 70:
        return "high"
    if score >= 40:
        return "medium"
    return "low"

def _find_block(blocks: list[str], title: str) -> str | None:
    for block in blocks:
        stripped = block.strip()
        if stripped.upper().startswith(title):
            return stripped[len(title):]
    return None

def parse_scores(block: str) -> dict[str, int]:
    for pattern in SCORE_PATTERNS:
        scores = {m.group(1).strip(): int(m.group(2)) for m in pattern.finditer(block)}
        if scores:
            return scores
    LOGGER.warning("No scores found in analysis reply; formatting may have drifted")
    return {}

def parse_section_recommendations(block: str) -> dict[str, str]:
    headings = list(_SUBSECTION.finditer(block))
    recs: dict[str, str] = {}
    for i, m in enumerate(headings):
        end = headings[i + 1].start() if i + 1 < len(headings) else len(block)
        body = block[m.end():end].strip()
        if body:
            recs[m.group(1).strip("[] ")] = body
    return recs

def parse_overall_recommendations(block: str) -> list[str]:
    items = [m.group(1).strip() for m in _NUMBERED.finditer(block)]
    if items:
        return items
    text = block.strip()
    return [text] if text else []

def parse_analysis(text: str) -> CanvasAnalysis:
    """
    Extract scores and recommendations from a model reply.

    Args:
        text: Raw completion text.

    Returns:
        Parsed analysis; empty when the reply has none of the expected blocks.
    """
    blocks = _TOP_HEADING.split(text)
    result = CanvasAnalysis()

    scores = _find_block(blocks, "QUALITY SCORES")
    if scores is not None:
        result.scores = parse_scores(scores)

    section = _find_block(blocks, "SECTION RECOMMENDATIONS")
    if section is not None:
        result.section_recommendations = parse_section_recommendations(section)

    overall = _find_block(blocks, "OVERALL RECOMMENDATIONS")
    if overall is not None:
        result.overall_recommendations = parse_overall_recommendations(overall)

    if result.is_empty:
        LOGGER.info("Analysis reply had no structured blocks; returning raw text only")
    return result
