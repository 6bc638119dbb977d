"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from meetingscheduler.config import AppConfig, ConstraintsConfig, RetryConfig


class TestAppConfig:
    """Tests for AppConfig."""

    def test_defaults(self):
        config = AppConfig()

        assert config.timezone == "UTC"
        assert config.default_page_size == 10
        assert config.retry.max_attempts == 3
        assert config.constraints.max_range_days == 7
        assert config.constraints.max_slot_minutes == 480

    def test_load_from_yaml(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            "timezone: Europe/Berlin\n"
            "provider:\n"
            "  base_url: http://provider:9000/\n"
            "  max_attempts: 5\n"
            "constraints:\n"
            "  max_range_days: 14\n"
            "store:\n"
            "  path: /var/lib/meetings.db\n",
            encoding="utf-8",
        )

        config = AppConfig.load_from_yaml(config_path)

        assert config.timezone == "Europe/Berlin"
        assert config.provider.base_url == "http://provider:9000"
        assert config.provider.max_attempts == 5
        assert config.constraints.max_range_days == 14
        assert config.store.path == Path("/var/lib/meetings.db")

    def test_empty_file_uses_defaults(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("", encoding="utf-8")

        assert AppConfig.load_from_yaml(config_path) == AppConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("provider: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(config_path)

    def test_non_mapping_root(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(config_path)


class TestSectionValidation:
    """Field validators on config sections."""

    def test_inverted_slot_bounds_are_rejected(self):
        with pytest.raises(ValidationError):
            ConstraintsConfig(min_slot_minutes=60, max_slot_minutes=30)

    def test_zero_retry_attempts_are_rejected(self):
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=0)

    def test_build_validator_carries_limits(self):
        validator = ConstraintsConfig(max_range_days=3, max_meeting_minutes=90).build_validator()

        assert validator.max_range_days == 3
        assert validator.max_meeting_minutes == 90
