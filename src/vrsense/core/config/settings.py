"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """VR Sense server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback: the ingestion API has no auth layer.
    # Opt into `0.0.0.0` explicitly when headsets connect over the network.
    vrsense_host: str = "127.0.0.1"
    vrsense_port: int = 3000
    vrsense_log_level: str = "info"
    vrsense_allow_insecure_bind: bool = False

    # Origins allowed to call the HTTP API from a browser (JSON list in env)
    vrsense_cors_origins: list[str] = ["*"]

    # Storage (single JSON document holding every session)
    data_file: str = "data/sessions.json"

    # Optional Fernet key for encrypting the session document at rest.
    # Ciphertexts are already Paillier-encrypted; this also hides session ids,
    # timestamps and public keys on disk.
    store_encryption_key: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
