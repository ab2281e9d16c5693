"""
Shared prompt blocks and output budgets reused by every pipeline variant.
"""

from __future__ import annotations


# ── Output budgets ──────────────────────────────────────────────────
RESEARCH_STAGE_MAX_TOKENS = 4096
PERSONA_MAX_TOKENS = 4096
DEEP_STAGE_MAX_TOKENS = 4096


# ── Knowledge boundary ──────────────────────────────────────────────
#    Appended wherever retrieved evidence is injected so the model does
#    not invent sources that were never retrieved.
KNOWLEDGE_BOUNDARY = """
KNOWLEDGE SOURCES
You may only draw on the retrieved knowledge above.
Primary sources (the books) are authoritative: quote them verbatim when possible,
formatted as *"exact quote"* [Book Name].
Secondary sources (practitioner courses) are practical guidance: reference them
for exercises and tips.
If something is not in the retrieved knowledge, say so honestly.
Do not invent course names, quotes, or teachings.
""".strip()


# ── Context blocks ──────────────────────────────────────────────────
EVIDENCE_BLOCK = """
{evidence}

""" + KNOWLEDGE_BOUNDARY

MEMORY_BLOCK = """
WHAT YOU REMEMBER ABOUT THIS PERSON
{memory}
""".strip()
