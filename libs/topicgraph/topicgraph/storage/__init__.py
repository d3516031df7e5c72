"""Artifact storage backends."""

from topicgraph.config import Settings
from topicgraph.exceptions import ConfigurationError
from topicgraph.storage.local import LocalStorage
from topicgraph.storage.memory import InMemoryStorage
from topicgraph.storage.port import StoragePort, artifact_path, version_artifact_path


def get_storage(settings: Settings) -> StoragePort:
    backend = str(settings.storage.backend or "local").strip().lower()
    match backend:
        case "local":
            return LocalStorage(settings.data_dir)
        case "memory":
            return InMemoryStorage()
        case "s3":
            from topicgraph.storage.s3_store import S3Storage

            cfg = settings.storage
            return S3Storage(
                endpoint=cfg.s3_endpoint,
                access_key=cfg.s3_access_key,
                secret_key=cfg.s3_secret_key,
                bucket=cfg.s3_bucket_name,
                default_ttl_s=int(cfg.s3_presign_expires_hours) * 3600,
            )
        case _:
            raise ConfigurationError(f"Unknown storage backend: {backend}")


__all__ = [
    "InMemoryStorage",
    "LocalStorage",
    "StoragePort",
    "artifact_path",
    "get_storage",
    "version_artifact_path",
]
