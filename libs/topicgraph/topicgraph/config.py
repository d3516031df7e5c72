"""Configuration management using pydantic-settings."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from topicgraph.exceptions import ConfigurationError

_ENV_FILES = (".env", "../.env", "../../.env")

_REPO_ROOT = Path(__file__).resolve().parents[3]


def _resolve_repo_path(value: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return raw
    p = Path(raw)
    if p.is_absolute():
        return str(p)
    return str((_REPO_ROOT / p).resolve())


class VideoStepConfig(BaseSettings):
    """Download / normalize / audio extraction."""

    model_config = SettingsConfigDict(
        env_prefix="TOPICGRAPH_VIDEO_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    output_format: str = "mp4"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    max_height: int = Field(default=720, ge=144)
    audio_sample_rate: int = Field(default=16000, ge=8000)
    enable_scene_detection: bool = False
    scene_threshold: float = Field(default=0.3, gt=0, le=1)
    download_timeout_s: float = Field(default=600.0, gt=0)


class ASRStepConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOPICGRAPH_ASR_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    language: str | None = None
    enable_word_alignment: bool = True
    enable_diarization: bool = False


class TopicStepConfig(BaseSettings):
    """Segmentation thresholds and topic post-processing."""

    model_config = SettingsConfigDict(
        env_prefix="TOPICGRAPH_TOPIC_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    pause_threshold_s: float = Field(default=2.0, ge=0)
    coherence_threshold: float = Field(default=0.7, ge=-1, le=1)
    topic_levels: int = Field(default=3, ge=1, le=5)
    merge_threshold: float = Field(default=0.85, ge=-1, le=1)
    merge_max_gap_s: float = Field(default=5.0, ge=0)
    multi_parent: bool = True
    keyword_limit: int = Field(default=20, ge=1, le=20)
    summarize_concurrency: int = Field(default=5, ge=1)

    # Importance weights, must sum to 1.0
    duration_weight: float = Field(default=0.3, ge=0, le=1)
    centrality_weight: float = Field(default=0.3, ge=0, le=1)
    novelty_weight: float = Field(default=0.4, ge=0, le=1)

    @model_validator(mode="after")
    def _validate_weights(self) -> "TopicStepConfig":
        total = self.duration_weight + self.centrality_weight + self.novelty_weight
        if abs(total - 1.0) > 1e-6:
            raise ConfigurationError(
                f"importance weights must sum to 1.0 (got {total:.6f})"
            )
        return self


class GraphStepConfig(BaseSettings):
    """Edge synthesis, pruning and clustering."""

    model_config = SettingsConfigDict(
        env_prefix="TOPICGRAPH_GRAPH_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    knn_k: int = Field(default=5, ge=1)
    similarity_threshold: float = Field(default=0.75, ge=-1, le=1)
    max_semantic_edges: int = Field(default=10, ge=1)
    sequence_weight: float = Field(default=0.8, ge=0, le=1)
    reference_min_shared: int = Field(default=2, ge=1)

    create_semantic_edges: bool = True
    create_hierarchy_edges: bool = True
    create_sequence_edges: bool = True
    create_reference_edges: bool = True

    enable_clustering: bool = True
    clustering_algorithm: Literal["greedy", "kmeans", "hdbscan"] = "greedy"
    cluster_threshold: float = Field(default=0.7, ge=-1, le=1)
    num_clusters: int = Field(default=0, ge=0, description="0 = auto for kmeans")
    hdbscan_min_cluster_size: int = Field(default=2, ge=2)

    @model_validator(mode="after")
    def _validate_limits(self) -> "GraphStepConfig":
        if self.max_semantic_edges < self.knn_k:
            raise ConfigurationError(
                "TOPICGRAPH_GRAPH_MAX_SEMANTIC_EDGES must be >= TOPICGRAPH_GRAPH_KNN_K"
            )
        return self


class SnippetStepConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOPICGRAPH_SNIPPET_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = True
    padding_s: float = Field(default=1.0, ge=0)
    min_duration_s: float = Field(default=3.0, gt=0)
    max_duration_s: float = Field(default=300.0, gt=0)
    min_level: int = Field(default=1, ge=0)
    generate_thumbnails: bool = True
    thumbnail_width: int = Field(default=640, ge=16)
    thumbnail_height: int = Field(default=360, ge=16)
    generate_captions: bool = True
    caption_format: Literal["vtt", "srt"] = "vtt"

    @model_validator(mode="after")
    def _validate_window(self) -> "SnippetStepConfig":
        if self.max_duration_s < self.min_duration_s:
            raise ConfigurationError(
                "TOPICGRAPH_SNIPPET_MAX_DURATION_S must be >= TOPICGRAPH_SNIPPET_MIN_DURATION_S"
            )
        return self


class ExportStepConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOPICGRAPH_EXPORT_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_format: str = "html"
    max_topics: int = Field(default=50, ge=1)
    include_appendix: bool = True
    html_theme: str = "white"
    include_snippets: bool = True


class RetrySettings(BaseSettings):
    """Default step retry policy."""

    model_config = SettingsConfigDict(
        env_prefix="TOPICGRAPH_RETRY_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_attempts: int = Field(default=3, ge=1)
    delay_s: float = Field(default=1.0, ge=0)
    backoff: Literal["fixed", "exponential"] = "exponential"
    max_delay_s: float = Field(default=30.0, ge=0)
    timeout_s: float | None = Field(default=600.0, gt=0, description="Per attempt.")
    total_timeout_s: float | None = Field(
        default=None,
        gt=0,
        description="Hard deadline across all attempts.",
    )


class ASRProviderSettings(BaseSettings):
    """ASR provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ASR_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "openai_compat"
    base_url: str = "http://localhost:8000/v1"
    api_key: str = ""
    model: str = "whisper-1"
    timeout: float = 300.0


class LLMSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "openai_compat"
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout: float = Field(default=120.0, gt=0)
    max_tokens: int = Field(default=512, ge=16)


class EmbeddingSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "hashing"  # "hashing" | "openai_compat" | "sentence_transformers"
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "all-MiniLM-L6-v2"
    dimension: int = Field(default=384, ge=8)
    batch_size: int = Field(default=64, ge=1)
    timeout: float = Field(default=60.0, gt=0)
    device: str | None = None


class MediaSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MEDIA_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "ffmpeg"
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    ytdlp_bin: str = "yt-dlp"


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: str = "local"  # "local" | "memory" | "s3"

    s3_endpoint: str = "http://localhost:9000"
    s3_access_key: str = "minioadmin"
    s3_secret_key: str = "minioadmin"
    s3_bucket_name: str = "topicgraph"
    s3_presign_expires_hours: int = Field(default=24, ge=1)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES, env_file_encoding="utf-8", extra="ignore"
    )

    data_dir: str = "./data"
    work_dir: str = "./data/work"
    log_dir: str = "./logs"

    storage: StorageSettings = StorageSettings()

    # Providers
    asr: ASRProviderSettings = ASRProviderSettings()
    llm: LLMSettings = LLMSettings()
    embedding: EmbeddingSettings = EmbeddingSettings()
    media: MediaSettings = MediaSettings()

    # Steps
    video: VideoStepConfig = VideoStepConfig()
    asr_step: ASRStepConfig = ASRStepConfig()
    topic: TopicStepConfig = TopicStepConfig()
    graph: GraphStepConfig = GraphStepConfig()
    snippet: SnippetStepConfig = SnippetStepConfig()
    export: ExportStepConfig = ExportStepConfig()
    retry: RetrySettings = RetrySettings()

    # Logging
    logging: LoggingSettings = LoggingSettings()

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        self.data_dir = _resolve_repo_path(self.data_dir)
        self.work_dir = _resolve_repo_path(self.work_dir)
        self.log_dir = _resolve_repo_path(self.log_dir)
        return self

    def model_post_init(self, __context: Any) -> None:
        for raw in (self.data_dir, self.work_dir, self.log_dir):
            Path(raw).mkdir(parents=True, exist_ok=True)


class PipelineConfig(BaseModel):
    """Snapshot of every behaviourally significant option, frozen at job start."""

    model_config = ConfigDict(frozen=True)

    video: dict[str, Any]
    asr: dict[str, Any]
    topic: dict[str, Any]
    graph: dict[str, Any]
    snippet: dict[str, Any]
    export: dict[str, Any]
    retry: dict[str, Any]
    embedding_model: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineConfig":
        return cls(
            video=settings.video.model_dump(mode="json"),
            asr=settings.asr_step.model_dump(mode="json"),
            topic=settings.topic.model_dump(mode="json"),
            graph=settings.graph.model_dump(mode="json"),
            snippet=settings.snippet.model_dump(mode="json"),
            export=settings.export.model_dump(mode="json"),
            retry=settings.retry.model_dump(mode="json"),
            embedding_model=f"{settings.embedding.provider}:{settings.embedding.model}",
        )

    def snapshot(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


# Snapshot section -> Settings attribute.
_SNAPSHOT_SECTIONS = {
    "video": "video",
    "asr": "asr_step",
    "topic": "topic",
    "graph": "graph",
    "snippet": "snippet",
    "export": "export",
    "retry": "retry",
}


def settings_from_snapshot(settings: Settings, snapshot: Mapping[str, Any] | None) -> Settings:
    """Settings whose step options come from a manifest's config snapshot.

    Resumed and forked runs use this so a manifest is always processed with the
    options it recorded. Provider, storage and logging settings stay live.
    Sections missing from the snapshot keep the current values.
    """
    if not snapshot:
        return settings
    update: dict[str, Any] = {}
    for section, attr in _SNAPSHOT_SECTIONS.items():
        data = snapshot.get(section)
        if isinstance(data, dict):
            current = getattr(settings, attr)
            update[attr] = type(current).model_validate({**current.model_dump(), **data})
    return settings.model_copy(update=update)
