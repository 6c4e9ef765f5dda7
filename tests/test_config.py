"""Tests for render configuration and Taichi setup."""

import logging

import pytest


class TestRenderConfig:
    """Tests for RenderConfig defaults and validation."""

    def test_defaults_match_cover_scene_render(self):
        """Default image is 400 wide at 3:2 with 5 samples per pixel."""
        from pathtracer.config import RenderConfig

        config = RenderConfig()
        assert config.width == 400
        assert config.image_height == 266
        assert config.samples_per_pixel == 5
        assert config.num_workers == 4

    def test_explicit_height_overrides_aspect_ratio(self):
        """An explicit height is used as is."""
        from pathtracer.config import RenderConfig

        config = RenderConfig(width=100, height=30)
        assert config.image_height == 30

    def test_validate_accepts_defaults(self):
        """Default configuration is valid."""
        from pathtracer.config import RenderConfig

        RenderConfig().validate()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"width": 1},
            {"width": 10, "height": 1},
            {"samples_per_pixel": 0},
            {"max_depth": -1},
            {"num_workers": 0},
            {"batch_size": 0},
            {"aspect_ratio": 0.0},
        ],
    )
    def test_validate_rejects_bad_values(self, kwargs):
        """Out-of-range parameters raise ValueError."""
        from pathtracer.config import RenderConfig

        with pytest.raises(ValueError):
            RenderConfig(**kwargs).validate()

    @pytest.mark.parametrize("aspect_ratio", [0.0, -1.5])
    def test_non_positive_aspect_ratio_names_the_field(self, aspect_ratio):
        """A derived height is never computed from a non-positive ratio."""
        from pathtracer.config import RenderConfig

        with pytest.raises(ValueError, match="aspect_ratio"):
            RenderConfig(aspect_ratio=aspect_ratio).validate()


class TestInitTaichi:
    """Tests for one-shot Taichi initialization."""

    def test_second_init_is_ignored(self, caplog):
        """Calling init_taichi again after the session init does nothing."""
        from pathtracer.config import RenderConfig, init_taichi

        with caplog.at_level(logging.DEBUG, logger="pathtracer.config"):
            init_taichi(RenderConfig(num_workers=1))

        assert "already initialized" in caplog.text

    def test_configure_logging_sets_level(self):
        """configure_logging accepts level names."""
        from pathtracer.config import configure_logging

        # basicConfig is a no-op once handlers exist; it must not raise
        configure_logging("debug")
