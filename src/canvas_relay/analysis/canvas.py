"""Render canvas sections into the analysis prompt."""
from __future__ import annotations
from pathlib import Path
from typing import Mapping

TEMPLATE_PATH = Path(__file__).resolve().parent / "prompt_template.txt"
CANVAS_SLOT = "{{input}}"
EMPTY_MARKER = "[EMPTY SECTION - NO CONTENT]"

SECTION_NAMES = {
    "task-type": "Task Type",
    "human-judgment": "Human Judgment & Oversight",
    "action": "Action",
    "outcome": "Outcome",
    "input-data": "Input Data / Prompts / Features",
    "training-data": "Training/Fine-tuning Data",
    "feedback-loop": "Feedback Loop",
    "value-proposition": "Value Proposition",
    "risks-responsible-ai": "Risks & Responsible AI",
    "model-selection": "Model Selection & Prompt Engineering",
    "content-moderation": "Content Moderation & Quality Control",
    "transparency-ux": "Transparency & User Experience",
}

def load_template(path: str | Path = TEMPLATE_PATH) -> str:
    """Read the analysis prompt template; the bundled one asks for the three scored blocks."""
    return Path(path).read_text(encoding="utf-8")

def format_canvas(sections: Mapping[str, str]) -> str:
    """
    Format canvas sections as markdown for the model.

    Section ids are replaced by their display names; unknown ids are kept as-is.

    Args:
        sections: Mapping of section id to the section's free text.
    """
    parts = []
    for section_id, text in sections.items():
        name = SECTION_NAMES.get(section_id, section_id)
        body = text if text and text.strip() else EMPTY_MARKER
        parts.append(f"## {name}\n{body}\n")
    return "\n".join(parts)

def build_analysis_prompt(sections: Mapping[str, str], template: str | None = None) -> str:
    """
    Place the formatted canvas into the analysis template.

    Args:
        sections: Mapping of section id to the section's free text.
        template: Template text with a ``{{input}}`` slot; the bundled template when omitted.
    """
    if template is None:
        template = load_template()
    return template.replace(CANVAS_SLOT, format_canvas(sections))
