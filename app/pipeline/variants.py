"""
Pipeline variant definitions.

A variant is pure data: which stages run, in what order, what each
stage's template references, and which stages the user sees.  Slot
references are validated when this module is imported.
"""

from __future__ import annotations

from app.pipeline.templates import template
from app.prompts.constants import (
    DEEP_STAGE_MAX_TOKENS,
    PERSONA_MAX_TOKENS,
    RESEARCH_STAGE_MAX_TOKENS,
)
from app.prompts.deep_experiment import (
    CHALLENGE_INSTRUCTION,
    DEEP_DIVE_INSTRUCTION,
    ORACLE_INSTRUCTION,
)
from app.prompts.persona import PERSONA_INSTRUCTION
from app.prompts.research_chain import SCOUT_INSTRUCTION, SYNTHESIS_INSTRUCTION
from app.schemas.pipeline import PipelineStage, PipelineVariant

# Evidence scout → synthesis.  Output feeds PERSONA_ANSWER as {findings}.
RESEARCH_CHAIN = PipelineVariant(
    name="research-chain",
    stages=[
        PipelineStage(
            key="scout",
            name="The Scout",
            template=template(SCOUT_INSTRUCTION),
            max_tokens=RESEARCH_STAGE_MAX_TOKENS,
            visible=False,
        ),
        PipelineStage(
            key="synthesis",
            name="The Sage",
            template=template(SYNTHESIS_INSTRUCTION),
            max_tokens=RESEARCH_STAGE_MAX_TOKENS,
            visible=False,
        ),
    ],
)

PERSONA_ANSWER = PipelineVariant(
    name="persona-answer",
    stages=[
        PipelineStage(
            key="answer",
            name="Tufti",
            template=template(PERSONA_INSTRUCTION),
            max_tokens=PERSONA_MAX_TOKENS,
        ),
    ],
)

# Explore → self-critique → final synthesis.  Only the last stage is shown.
DEEP_EXPERIMENT = PipelineVariant(
    name="deep-experiment",
    stages=[
        PipelineStage(
            key="deep_dive",
            name="Deep Dive",
            template=template(DEEP_DIVE_INSTRUCTION),
            max_tokens=DEEP_STAGE_MAX_TOKENS,
            visible=False,
        ),
        PipelineStage(
            key="challenge",
            name="The Challenge",
            template=template(CHALLENGE_INSTRUCTION),
            max_tokens=DEEP_STAGE_MAX_TOKENS,
            visible=False,
        ),
        PipelineStage(
            key="oracle",
            name="The Oracle Speaks",
            template=template(ORACLE_INSTRUCTION),
            max_tokens=DEEP_STAGE_MAX_TOKENS,
        ),
    ],
)

VARIANTS: dict[str, PipelineVariant] = {
    v.name: v for v in (RESEARCH_CHAIN, PERSONA_ANSWER, DEEP_EXPERIMENT)
}


def research_findings(passes_text: list[str]) -> str:
    """Join research-chain stage texts into the {findings} value."""
    return "\n\n---\n\n".join(t for t in passes_text if t.strip())
