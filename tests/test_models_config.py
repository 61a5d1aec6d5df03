"""Tests for configuration models."""

import json

import pytest
from pydantic import ValidationError

from pagediff.models.comparison import Viewport
from pagediff.models.config import (
    DEVICE_PRESETS,
    BrowserConfig,
    CompareConfig,
    DiffConfig,
    RenderConfig,
    ServerConfig,
)


class TestRenderConfig:
    """Tests for RenderConfig model."""

    def test_default_values(self):
        config = RenderConfig()
        assert config.navigation_timeout_ms == 30000
        assert config.settle_delay_ms == 1000
        assert config.scroll_step_px == 100
        assert config.scroll_interval_ms == 100
        assert config.post_scroll_delay_ms == 1500
        assert config.image_timeout_ms == 5000
        assert config.top_settle_delay_ms == 500

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValidationError):
            RenderConfig(navigation_timeout_ms=0)
        with pytest.raises(ValidationError):
            RenderConfig(image_timeout_ms=-1)

    def test_delays_may_be_zero(self):
        config = RenderConfig(settle_delay_ms=0, scroll_interval_ms=0, top_settle_delay_ms=0)
        assert config.settle_delay_ms == 0


class TestDiffConfig:

    def test_default_threshold(self):
        config = DiffConfig()
        assert config.threshold == 0.1
        assert config.include_anti_aliased is False
        assert config.diff_color == (255, 0, 0)

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_threshold_bounded(self, threshold):
        with pytest.raises(ValidationError):
            DiffConfig(threshold=threshold)


class TestBrowserAndServerConfig:

    def test_browser_defaults(self):
        config = BrowserConfig()
        assert config.headless is True
        assert config.user_agent is None
        assert config.locale == "en-US"
        assert config.device_scale_factor == 1.0

    def test_server_defaults(self):
        config = ServerConfig()
        assert config.port == 5001
        assert config.host == "127.0.0.1"


class TestDevicePresets:

    def test_laptop_matches_default_viewport(self):
        assert DEVICE_PRESETS["laptop"] == Viewport()

    def test_all_presets_positive(self):
        for name, viewport in DEVICE_PRESETS.items():
            assert viewport.width > 0 and viewport.height > 0, name


class TestCompareConfig:
    """Tests for top-level config load/save."""

    def test_defaults(self):
        config = CompareConfig()
        assert config.artifacts_dir == "./screenshots"
        assert config.public_prefix == "/screenshots"
        assert config.default_viewport == Viewport(width=1280, height=720)

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "pagediff.json"
        config = CompareConfig(
            artifacts_dir="/var/tmp/shots",
            render=RenderConfig(navigation_timeout_ms=45000),
            diff=DiffConfig(threshold=0.2),
        )
        config.save(path)

        loaded = CompareConfig.load(path)

        assert loaded == config
        assert loaded.render.navigation_timeout_ms == 45000

    def test_load_partial_file(self, tmp_path):
        path = tmp_path / "pagediff.json"
        path.write_text(json.dumps({"server": {"port": 8080}}))

        config = CompareConfig.load(path)

        assert config.server.port == 8080
        assert config.render == RenderConfig()

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CompareConfig.load(tmp_path / "missing.json")
