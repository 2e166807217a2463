"""Tests for configuration module."""

import os

import pytest
from pydantic import ValidationError


def test_settings_defaults():
    """Settings have sensible defaults."""
    from loom.core.config import Settings

    # Create fresh settings (don't use global)
    s = Settings()

    assert s.config_file == "loom_config.yaml"
    assert s.log_sessions_to_keep == 5


def test_settings_from_env():
    """Settings can be overridden via LOOM_ environment variables."""
    os.environ["LOOM_DEBUG"] = "true"
    os.environ["LOOM_LOG_SESSIONS_TO_KEEP"] = "12"

    try:
        from loom.core.config import Settings

        s = Settings()

        assert s.debug
        assert s.log_sessions_to_keep == 12
    finally:
        del os.environ["LOOM_DEBUG"]
        del os.environ["LOOM_LOG_SESSIONS_TO_KEEP"]


def test_settings_validation():
    """Settings validate constraints."""
    from loom.core.config import Settings

    with pytest.raises(ValidationError):
        Settings(log_sessions_to_keep=0)


def test_global_settings_available():
    """Global settings instance is importable."""
    from loom.core.config import settings

    assert settings is not None
    assert hasattr(settings, "config_dir")


class TestLoomConfig:
    """Tests for engine tunables."""

    def test_defaults(self):
        from loom.core.config import LoomConfig
        from loom.domain.models import ThreadCategory

        cfg = LoomConfig()

        assert cfg.max_primary_threads == 3
        assert cfg.max_secondary_threads == 5
        assert cfg.stall_threshold_chapters == 10
        assert cfg.urgency_critical_threshold == 500.0
        assert cfg.payoff_window(ThreadCategory.MAJOR).max_age == 50

    def test_config_is_immutable(self):
        from loom.core.config import LoomConfig

        cfg = LoomConfig()
        with pytest.raises(ValidationError):
            cfg.max_primary_threads = 10

    def test_urgency_bands_must_be_ordered(self):
        from loom.core.config import LoomConfig

        with pytest.raises(ValidationError):
            LoomConfig(urgency_watch_threshold=400.0, urgency_urgent_threshold=300.0)

    def test_bloom_debt_below_overdue_debt(self):
        from loom.core.config import LoomConfig

        with pytest.raises(ValidationError):
            LoomConfig(bloom_debt_threshold=90.0, overdue_debt_threshold=80.0)

    def test_missing_category_weight_rejected(self):
        from loom.core.config import LoomConfig

        with pytest.raises(ValidationError):
            LoomConfig(category_urgency_weights={"MAJOR": 1.0})

    def test_inverted_payoff_window_rejected(self):
        from loom.core.config import LoomConfig, _default_payoff_windows
        from loom.domain.models import ThreadCategory

        windows = _default_payoff_windows()
        windows[ThreadCategory.MINOR] = {"min_age": 20, "max_age": 5}
        with pytest.raises(ValidationError):
            LoomConfig(payoff_windows=windows)

    def test_negative_caps_rejected(self):
        from loom.core.config import LoomConfig

        with pytest.raises(ValidationError):
            LoomConfig(max_primary_threads=-1)


class TestLoadLoomConfig:
    """Tests for YAML loading."""

    def test_loads_project_config(self):
        from loom.core.config import LoomConfig, load_loom_config

        cfg = load_loom_config()

        assert isinstance(cfg, LoomConfig)
        assert cfg.stall_threshold_chapters == 10

    def test_missing_file_returns_defaults(self, tmp_path):
        from loom.core.config import LoomConfig, load_loom_config

        cfg = load_loom_config(tmp_path / "nope.yaml")

        assert cfg == LoomConfig()

    def test_overrides_applied(self, tmp_path):
        from loom.core.config import load_loom_config

        path = tmp_path / "loom_config.yaml"
        path.write_text("max_primary_threads: 4\nstall_threshold_chapters: 6\n")

        cfg = load_loom_config(path)

        assert cfg.max_primary_threads == 4
        assert cfg.stall_threshold_chapters == 6

    def test_empty_file_returns_defaults(self, tmp_path):
        from loom.core.config import LoomConfig, load_loom_config

        path = tmp_path / "loom_config.yaml"
        path.write_text("")

        assert load_loom_config(path) == LoomConfig()

    def test_invalid_yaml_raises_configuration_error(self, tmp_path):
        from loom.core.config import load_loom_config
        from loom.core.exceptions import ConfigurationError

        path = tmp_path / "loom_config.yaml"
        path.write_text("max_primary_threads: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_loom_config(path)

    def test_non_mapping_raises_configuration_error(self, tmp_path):
        from loom.core.config import load_loom_config
        from loom.core.exceptions import ConfigurationError

        path = tmp_path / "loom_config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_loom_config(path)

    def test_invalid_values_raise_configuration_error(self, tmp_path):
        from loom.core.config import load_loom_config
        from loom.core.exceptions import ConfigurationError

        path = tmp_path / "loom_config.yaml"
        path.write_text("urgency_watch_threshold: 900\n")

        with pytest.raises(ConfigurationError):
            load_loom_config(path)
