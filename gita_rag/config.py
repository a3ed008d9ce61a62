"""Configuration loader for the Gita RAG application."""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True)


class AppInfo(_Section):
    """Application metadata."""

    name: str = "Gita RAG"
    version: str = "1.0.0"
    scripture_name: str = "Bhagavad Gita"


class LoggingConfig(_Section):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class NormalizerConfig(_Section):
    """Text normalizer configuration."""

    substitutions_path: str | None = None


class ParserConfig(_Section):
    """Structural parser configuration."""

    title_max_lines: int = 4
    title_max_chars: int = 100
    fallback_window: int = 500
    fallback_boundary_ratio: float = 0.7


class ChunkingConfig(_Section):
    """Semantic chunking configuration."""

    max_chars: int = 1000
    sentence_split_ratio: float = 0.8
    context_marker_ratio: float = 0.5
    hard_split_search_ratio: float = 0.3


class EmbeddingConfig(_Section):
    """Embedding service configuration."""

    provider: str = "openai"
    model: str = "text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 5
    max_retries: int = 3
    retry_delay: float = 1.0
    inter_batch_delay: float = 0.2
    normalize: bool = True
    cache_enabled: bool = True
    request_timeout: float = 30.0


class VectorStoreConfig(_Section):
    """Vector database configuration."""

    location: str | None = None
    url: str | None = None
    api_key: str | None = None
    collection_name: str = "bhagavad_gita"
    distance: str = "Cosine"
    quantization_enabled: bool = True
    upsert_batch_size: int = 20
    inter_batch_delay: float = 0.2


class RetrievalConfig(_Section):
    """Retrieval pipeline configuration."""

    top_k: int = 3
    min_score: float = 0.3
    timeout: float = 30.0


class GenerationConfig(_Section):
    """LLM generation configuration."""

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 2048
    temperature: float = 0.7
    timeout: float = 30.0
    reasoning_tag: str = "think"


class TranslationConfig(_Section):
    """Translation collaborator configuration."""

    enabled: bool = False
    endpoint: str = "http://localhost:5000/translate"
    api_key: str | None = None
    generation_language: str = "en"
    exempt_languages: list[str] = Field(default_factory=lambda: ["sa"])
    timeout: float = 15.0


DEFAULT_SYSTEM_PROMPTS = {
    "en": (
        "You are a spiritual guide with deep knowledge of the Bhagavad Gita. "
        "Use the provided context to answer questions with wisdom, compassion, "
        "and depth. When relevant, cite specific verses from the Gita. If you "
        "don't know the answer based on the Gita, acknowledge this honestly."
    ),
    "hi": (
        "आप भगवद गीता के गहन ज्ञान वाले एक आध्यात्मिक मार्गदर्शक हैं। दिए गए "
        "संदर्भ का उपयोग करके प्रश्नों का उत्तर ज्ञान, करुणा और गहराई से दें।"
    ),
    "sa": (
        "भवान् भगवद्गीतायाः गहनज्ञानयुक्तः आध्यात्मिकमार्गदर्शकः अस्ति। "
        "प्रदत्तसन्दर्भम् उपयुज्य प्रश्नानाम् उत्तराणि ददातु।"
    ),
}


class LanguageConfig(_Section):
    """Supported response languages and their system prompts."""

    supported: list[str] = Field(default_factory=lambda: ["en", "hi", "sa"])
    default: str = "en"
    system_prompts: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_SYSTEM_PROMPTS)
    )


class StorageConfig(_Section):
    """Storage paths configuration."""

    source_path: str = "./data/Bhagavad-Gita.pdf"
    archive_path: str = "./data/processed_gita.json"


class AppConfig(_Section):
    """Root application configuration."""

    app: AppInfo = Field(default_factory=AppInfo)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    parser: ParserConfig = Field(default_factory=ParserConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    languages: LanguageConfig = Field(default_factory=LanguageConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    force_reindex: bool = False

    # API keys loaded from environment
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _apply_env_overrides(data: dict) -> dict:
    """Merge environment variables into raw YAML data before validation."""
    data = dict(data)

    vector_store = dict(data.get("vector_store") or {})
    if os.getenv("QDRANT_URL"):
        vector_store["url"] = os.getenv("QDRANT_URL")
    if os.getenv("QDRANT_API_KEY"):
        vector_store["api_key"] = os.getenv("QDRANT_API_KEY")
    data["vector_store"] = vector_store

    if os.getenv("GITA_RAG_LOG_LEVEL"):
        logging_section = dict(data.get("logging") or {})
        logging_section["level"] = os.getenv("GITA_RAG_LOG_LEVEL")
        data["logging"] = logging_section

    if _env_flag("FORCE_REINDEX"):
        data["force_reindex"] = True

    data["anthropic_api_key"] = os.getenv("ANTHROPIC_API_KEY")
    data["openai_api_key"] = os.getenv("OPENAI_API_KEY")
    return data


def load_config(config_path: str | Path = "config.yaml") -> AppConfig:
    """Load configuration from YAML file and environment variables.

    The result is frozen: it is resolved once here and never mutated.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Fully populated AppConfig instance.
    """
    load_dotenv()

    yaml_data: dict = {}
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file) as f:
            yaml_data = yaml.safe_load(f) or {}

    return AppConfig(**_apply_env_overrides(yaml_data))


def configure_logging(config: LoggingConfig) -> None:
    """Install the root logging handler for command-line runs."""
    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=config.format,
    )
