"""
Pipeline modules for one chat turn.

Intent:        intent.py          (rule-based classifier)
Retrieval:     retrieval.py       (mode selection, semantic / hybrid / weighted)
               fusion.py          (keyword scoring, hybrid merge, source weighting)
               direct_read.py     (page / chapter windows from corpus text)
Prompting:     templates.py, variants.py, context.py
Streaming:     orchestrator.py    (staged LLM passes → event sink)

Request flow: chat.py
"""
