"""
Classification endpoint: runs only the Intent Classifier and reports
which retrieval mode the query would take.  No I/O.
"""

from __future__ import annotations

from fastapi import APIRouter

from app.pipeline.intent import classify
from app.pipeline.retrieval import select_mode
from app.schemas.response import ClassifyRequest, ClassifyResponse

router = APIRouter(tags=["Classify"])


@router.post("/classify", response_model=ClassifyResponse)
async def classify_query(request: ClassifyRequest):
    classification = classify(request.query)
    return ClassifyResponse(
        classification=classification,
        retrieval_mode=select_mode(classification).value,
    )
