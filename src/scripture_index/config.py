"""Centralized configuration for scripture-index using Pydantic Settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``SCRIPTURE_INDEX_*`` environment variables.

    Every path is optional: a missing snapshot path simply means the matching
    index is rebuilt from the corpus on first use.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCRIPTURE_INDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",  # Ignore extra env vars not defined in model
    )

    # Corpus
    corpus_dir: Path | None = Field(default=None, description="Directory of plain per-chapter XML files")
    tagged_corpus_dir: Path | None = Field(
        default=None, description="Directory of word-tagged per-chapter XML files (concordance source)"
    )

    # Snapshots
    search_snapshot_path: Path | None = Field(default=None, description="Prebuilt search index snapshot")
    concordance_snapshot_path: Path | None = Field(default=None, description="Prebuilt concordance snapshot")
    cross_reference_snapshot_path: Path | None = Field(
        default=None, description="Prebuilt cross-reference snapshot"
    )
    cross_reference_source_path: Path | None = Field(
        default=None, description="Raw tab separated cross-reference data used when no snapshot is available"
    )

    # Indexing
    first_family_last_document: int = Field(
        default=39, ge=1, description="Last document id whose bare identifiers belong to the H family"
    )
    yield_every_chapters: int = Field(
        default=1, ge=1, description="Yield to the event loop after this many chapters during runtime builds"
    )

    # Query
    default_max_results: int = Field(default=100, ge=0, description="Default page size for search (0 = unlimited)")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    def snapshot_paths(self) -> dict[str, Path | None]:
        """Configured snapshot locations keyed by index name."""
        return {
            "search": self.search_snapshot_path,
            "concordance": self.concordance_snapshot_path,
            "cross_references": self.cross_reference_snapshot_path,
        }
