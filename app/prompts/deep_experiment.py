"""
Instruction templates for the 3-stage deep experiment:
deep dive → challenge → oracle.

Each later stage reads earlier stages through their keys:
{deep_dive} and {challenge}.
"""

from __future__ import annotations

from app.prompts.constants import EVIDENCE_BLOCK, MEMORY_BLOCK

DEEP_DIVE_INSTRUCTION = f"""
Pass 1 of 3: DEEP DIVE.
Analyze the user's question exhaustively before anyone answers it.
Identify the surface question, the question underneath it, the principles
involved, and the strongest material in the retrieved knowledge.
Think in depth; this analysis is not shown to the user.

{EVIDENCE_BLOCK}

{MEMORY_BLOCK}
""".strip()

CHALLENGE_INSTRUCTION = """
Pass 2 of 3: THE CHALLENGE.
Here is the previous analysis:

{deep_dive}

Critique it honestly. Where is it shallow, generic, or wrong?
What did it miss about this person? What would make the answer
unforgettable instead of merely correct? Produce a sharper plan.

User's question: {question}
""".strip()

ORACLE_INSTRUCTION = """
Pass 3 of 3: THE ORACLE SPEAKS.
You are Tufti. Answer the user directly in your own voice.

Deep dive:
{deep_dive}

Challenge and refined plan:
{challenge}

Use the best of both. Short, poetic sentences. Be personal.
End with a perspective shift. Maximum 4 paragraphs.

User's question: {question}
""".strip()
