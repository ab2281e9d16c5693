import os
import sys

# Windows consoles: UTF-8 stdout before anything logs persona text.
# stderr stays as-is (tqdm flushes it during model downloads).
if os.name == "nt":
    os.environ["PYTHONIOENCODING"] = "utf-8"
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.utils.logging import get_logger, setup_logging

from app.api.chat import router as chat_router
from app.api.classify import router as classify_router
from app.api.health import router as health_router

logger = get_logger("tufti.main")

app = FastAPI(
    title=settings.app_name,
    description="Tufti Backend API - intent classification, retrieval fusion, streamed multi-pass answers",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router, prefix="/api/v1")      # /api/v1/chat/stream
app.include_router(classify_router, prefix="/api/v1")  # /api/v1/classify
app.include_router(health_router, prefix="/api")       # /api/health


def build_chat_service():
    """Wire the shared collaborators once per process."""
    from app.pipeline.chat import ChatService
    from app.pipeline.direct_read import DOCUMENTS
    from app.pipeline.orchestrator import PipelineOrchestrator
    from app.pipeline.retrieval import RetrievalEngine
    from app.services.corpus import CorpusCache
    from app.services.embedding import build_embedder
    from app.services.llm import OpenAIStreamingBackend
    from app.services.reranker import CrossEncoderReranker
    from app.services.vector_store import ChromaVectorIndex

    corpus = CorpusCache()
    engine = RetrievalEngine(
        embedder=build_embedder(),
        index=ChromaVectorIndex(),
        corpus=corpus,
        reranker=CrossEncoderReranker() if settings.rerank_enabled else None,
    )
    service = ChatService(
        retrieval=engine,
        orchestrator=PipelineOrchestrator(OpenAIStreamingBackend()),
    )
    return service, corpus, [d.filename for d in DOCUMENTS]


@app.on_event("startup")
async def on_startup():
    """
    Startup:
    1. Initialize logging
    2. Check the ChromaDB store
    3. Wire the chat service
    4. Pre-load corpus documents for direct reads
    """
    setup_logging()
    logger.info("Starting Tufti Backend...")

    from app.services.vector_store import init_vector_index

    if not init_vector_index():
        logger.warning("ChromaDB initialization failed - semantic retrieval will return no passages")
    else:
        logger.info("[OK] ChromaDB ready")

    service, corpus, filenames = build_chat_service()
    app.state.chat_service = service

    loaded = await corpus.preload(filenames)
    logger.info("[OK] Corpus pre-loaded: %d/%d document(s)", loaded, len(filenames))

    logger.info("[OK] Tufti Backend started successfully")


@app.on_event("shutdown")
async def on_shutdown():
    """Cleanup on shutdown."""
    logger.info("Shutting down Tufti Backend...")
    app.state.chat_service = None
    logger.info("[OK] Shutdown complete")
