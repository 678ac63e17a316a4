"""Unit tests for briefs config loading and tier limits."""

import json
import logging
from unittest.mock import patch

from brief_analyzer.config import (
    DEFAULT_CONFIG_PATH,
    MB,
    BriefsConfig,
    ExtractionConfig,
    configure_logging,
    load_config,
)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestExtractionConfigDefaults:
    def test_default_values(self):
        c = ExtractionConfig()
        assert c.max_retries == 2
        assert c.backoff_base_seconds == 2.0
        assert c.temperature == 0.3
        assert c.max_tokens == 2000
        assert c.default_confidence == 85


class TestTierLimits:
    def test_starter(self):
        limits = BriefsConfig().limits_for("starter")
        assert limits.max_briefs_per_month == 10
        assert limits.max_file_size_bytes == 5 * MB
        assert limits.ai_features is False

    def test_pro(self):
        limits = BriefsConfig().limits_for("pro")
        assert limits.max_briefs_per_month == 25
        assert limits.ai_features is True

    def test_agency_pro_unlimited(self):
        limits = BriefsConfig().limits_for("agency_pro")
        assert limits.max_briefs_per_month == -1
        assert limits.max_file_size_bytes == 50 * MB

    def test_unknown_tier_gets_starter(self):
        assert BriefsConfig().limits_for("platinum") == BriefsConfig().limits_for("starter")


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_bundled_file_matches_defaults(self):
        assert load_config(DEFAULT_CONFIG_PATH) == BriefsConfig()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.json") == BriefsConfig()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "briefs.json"
        path.write_text(json.dumps({"extraction": {"max_retries": 5}, "response_deadline_days": 3}))
        config = load_config(path)
        assert config.extraction.max_retries == 5
        assert config.extraction.temperature == 0.3
        assert config.response_deadline_days == 3

    def test_env_path(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"default_currency": "USD"}))
        with patch.dict("os.environ", {"BRIEFS_CONFIG_PATH": str(path)}):
            assert load_config().default_currency == "USD"

    def test_accepts_string_path(self, tmp_path):
        path = tmp_path / "briefs.json"
        path.write_text("{}")
        assert isinstance(load_config(str(path)), BriefsConfig)


class TestConfigureLogging:
    def test_reads_log_level(self):
        with patch("brief_analyzer.config.logging.basicConfig") as basic:
            with patch.dict("os.environ", {"LOG_LEVEL": "debug"}):
                configure_logging()
        assert basic.call_args.kwargs["level"] == logging.DEBUG
