"""
Configuration settings for the Roadsmith engine.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Engine settings with environment variable support.

    Attributes:
        environment: Deployment environment, drives the default log level
        log_level: Explicit log level override
        min_spline_divisions: Minimum samples emitted per curve segment
        max_sample_spacing: Target spacing between discretized samples (meters)
        layer_simplify_tolerance: RDP tolerance used when emitting layer ribbons
        optimise_iterations_per_frame: Optimizer mutations per live frame
        search_expansions_per_frame: Grid search node expansions per frame
        default_preset: Preset assigned to newly created curves
        min_import_size: Smallest bounding-box extent of an imported grid path (meters)
        documents_dir: Directory for saved road documents
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="ROADSMITH_",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Optional[str] = None

    # Discretization
    min_spline_divisions: int = Field(default=10, ge=1)
    max_sample_spacing: float = Field(default=2.0, gt=0.0)

    # Layer emission
    layer_simplify_tolerance: float = Field(default=0.25, ge=0.0)

    # Frame budgets
    optimise_iterations_per_frame: int = Field(default=5, ge=1)
    search_expansions_per_frame: int = Field(default=25000, ge=1)

    # Homologation
    default_preset: str = "Rural Road"

    # Path import
    min_import_size: float = Field(default=10.0, ge=0.0)

    # Storage
    documents_dir: Path = Path("./data/documents")

    @property
    def is_production(self) -> bool:
        """Whether the engine runs in production mode."""
        return self.environment == "production"


# Global settings instance
settings = Settings()
