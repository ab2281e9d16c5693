from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Tufti Backend"
    environment: str = "development"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    # LLM backend (OpenAI or any OpenAI-compatible endpoint)
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    llm_model: str = "gpt-4o"
    llm_temperature: float = 0.8
    default_stage_max_tokens: int = 4096
    # Max seconds to wait for the next streamed chunk before the stage is failed
    stage_idle_timeout_seconds: float = 90.0

    # Embeddings: "openai" (remote service) or "sentence-transformers" (local model)
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-large"
    embedding_dimensions: int = 3072
    local_embedding_model: str = "all-MiniLM-L6-v2"

    # ChromaDB settings
    chromadb_persist_directory: str | None = None  # Auto-detected if None
    chromadb_collection: str = "tufti-knowledge"

    # Cross-encoder re-ranking
    rerank_enabled: bool = True
    rerank_model: str = "BAAI/bge-reranker-v2-m3"

    # Retrieval tuning
    retrieval_top_k: int = 5
    similarity_floor: float = 0.25
    semantic_candidate_multiplier: int = 3  # index over-fetch to leave room for re-ranking
    weighted_overfetch_multiplier: int = 2  # semantic over-fetch before source weighting
    keyword_min_word_length: int = 3  # query words must be strictly longer than this
    keyword_phrase_bonus: float = 5.0
    keyword_normalizer: float = 10.0
    hybrid_semantic_weight: float = 0.7
    hybrid_keyword_weight: float = 0.3
    verbatim_semantic_weight: float = 0.4
    verbatim_keyword_weight: float = 0.6
    dedupe_prefix_chars: int = 50

    # Direct reading from corpus text files
    corpus_directory: str | None = None  # Auto-detected if None (data/books)
    lines_per_page: int = 50
    page_window_lines: int = 50
    chapter_window_lines: int = 100
    beginning_window_lines: int = 80
    default_window_lines: int = 100

    # Intent classifier
    fast_path_max_chars: int = 30
    source_preference_table: dict[str, tuple[float, float]] = {
        # archetype -> (primary corpus weight, secondary corpus weight)
        "wisdom": (0.8, 0.3),
        "verbatim": (0.8, 0.3),
        "exploration": (0.8, 0.3),
        "action": (0.4, 0.9),
        "application": (0.4, 0.9),
        "comfort": (0.6, 0.7),
    }
    emotion_nudge: float = 0.2
    primary_nudge_emotions: list[str] = ["vulnerable"]
    secondary_nudge_emotions: list[str] = ["determined", "practical"]

    # Prompt context
    evidence_token_budget: int = 6000
    stage_summary_chars: int = 200
    complexity_min_keyword_hits: int = 2
    complexity_min_words: int = 40
    # Dominant-emotion pattern hits; each emotion bank has 5 patterns
    complexity_min_emotional_intensity: int = 3
    complexity_min_criteria: int = 2

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables that aren't in the Settings class


settings = Settings()
