"""
Tests for configuration module.
"""

import pytest
from pathlib import Path

from pydantic import ValidationError

from roadsmith.core.config import Settings


class TestSettings:
    """Tests for Settings class."""

    def test_default_values(self) -> None:
        """Test that default values are set correctly."""
        settings = Settings()
        assert settings.environment == "development"
        assert settings.min_spline_divisions == 10
        assert settings.max_sample_spacing == 2.0
        assert settings.layer_simplify_tolerance == 0.25
        assert settings.optimise_iterations_per_frame == 5
        assert settings.search_expansions_per_frame == 25000
        assert settings.default_preset == "Rural Road"
        assert settings.min_import_size == 10.0

    def test_is_production(self) -> None:
        """Test is_production property."""
        assert Settings(environment="production").is_production is True
        assert Settings(environment="staging").is_production is False

    def test_custom_values(self, tmp_path: Path) -> None:
        """Test setting custom configuration values."""
        documents_dir = tmp_path / "documents"
        settings = Settings(
            min_spline_divisions=4,
            max_sample_spacing=5.0,
            search_expansions_per_frame=100,
            documents_dir=documents_dir,
            environment="production",
        )

        assert settings.min_spline_divisions == 4
        assert settings.max_sample_spacing == 5.0
        assert settings.search_expansions_per_frame == 100
        assert settings.documents_dir == documents_dir
        assert settings.environment == "production"

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values are read from ROADSMITH_ environment variables."""
        monkeypatch.setenv("ROADSMITH_MAX_SAMPLE_SPACING", "3.5")
        monkeypatch.setenv("ROADSMITH_DEFAULT_PRESET", "Highway")

        settings = Settings()
        assert settings.max_sample_spacing == 3.5
        assert settings.default_preset == "Highway"

    def test_invalid_values_rejected(self) -> None:
        """Test that out-of-range values fail validation."""
        with pytest.raises(ValidationError):
            Settings(min_spline_divisions=0)
        with pytest.raises(ValidationError):
            Settings(max_sample_spacing=0.0)
        with pytest.raises(ValidationError):
            Settings(environment="testing")
