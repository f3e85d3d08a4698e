from __future__ import annotations

from canvas_relay.analysis.canvas import build_analysis_prompt, format_canvas, load_template


def test_bundled_template_has_expected_blocks() -> None:
    tpl = load_template()
    assert "{{input}}" in tpl
    for heading in ("# QUALITY SCORES", "# SECTION RECOMMENDATIONS", "# OVERALL RECOMMENDATIONS"):
        assert heading in tpl


def test_format_canvas_names_and_empty_marker() -> None:
    out = format_canvas({"risks-responsible-ai": "Bias audit", "custom-id": "  ", "action": ""})
    assert out == (
        "## Risks & Responsible AI\nBias audit\n\n"
        "## custom-id\n[EMPTY SECTION - NO CONTENT]\n\n"
        "## Action\n[EMPTY SECTION - NO CONTENT]\n"
    )


def test_build_analysis_prompt_with_custom_template() -> None:
    prompt = build_analysis_prompt({"outcome": "Ship v1"}, template="<<{{input}}>>")
    assert prompt == "<<## Outcome\nShip v1\n>>"


def test_bundled_prompt_embeds_canvas() -> None:
    prompt = build_analysis_prompt({"value-proposition": "Faster triage"})
    assert "{{input}}" not in prompt
    assert "## Value Proposition\nFaster triage" in prompt
