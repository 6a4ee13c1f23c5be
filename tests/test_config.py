"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from bookingslots.config import AppConfig, PolicyConfig, StoreConfig


def _write(tmp_path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestAppConfig:
    """Tests for AppConfig."""

    def test_defaults(self):
        config = AppConfig()
        policy = config.get_policy()

        assert config.timezone == "America/Chicago"
        assert policy.slot_interval_minutes == 30
        assert policy.buffer_minutes == 15
        assert policy.min_lead_time_hours == 12
        assert policy.occupying_statuses == frozenset(
            {"accepted", "confirmed", "arrived", "completed", "no_show"}
        )

    def test_load_from_yaml(self, tmp_path):
        path = _write(tmp_path, """
timezone: Europe/Berlin
policy:
  buffer_minutes: 10
  min_lead_time_hours: 2
store:
  data_file: data/schedule.json
""")

        config = AppConfig.load_from_yaml(path)

        assert config.timezone == "Europe/Berlin"
        assert config.get_policy().buffer_minutes == 10
        assert config.get_policy().slot_interval_minutes == 30
        assert config.resolve_data_file(path) == tmp_path / "data" / "schedule.json"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "timezone: [unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(path)

    def test_root_must_be_mapping(self, tmp_path):
        path = _write(tmp_path, "- just\n- a list\n")

        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(path)

    def test_unknown_timezone(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            AppConfig(timezone="Mars/Olympus_Mons")


class TestPolicyConfig:
    """Tests for policy validation."""

    @pytest.mark.parametrize("field", ["slot_interval_minutes", "default_duration_minutes"])
    def test_positive_fields(self, field):
        with pytest.raises(ValueError):
            PolicyConfig(**{field: 0})

    @pytest.mark.parametrize("field", ["buffer_minutes", "min_lead_time_hours"])
    def test_non_negative_fields(self, field):
        assert getattr(PolicyConfig(**{field: 0}), field) == 0

        with pytest.raises(ValueError):
            PolicyConfig(**{field: -1})

    def test_unknown_status(self):
        with pytest.raises(ValueError, match="Unknown booking status"):
            PolicyConfig(occupying_statuses=["confirmed", "pencilled_in"])


class TestStoreConfig:
    """Tests for store settings."""

    def test_rest_backend_requires_credentials(self):
        with pytest.raises(ValueError, match="base_url and api_key"):
            StoreConfig(backend="rest", base_url="https://shop.example.com")

    def test_absolute_data_file_is_kept(self, tmp_path):
        absolute = tmp_path / "elsewhere.json"
        config = AppConfig(store=StoreConfig(data_file=absolute))

        assert config.resolve_data_file(tmp_path / "config.yaml") == absolute
