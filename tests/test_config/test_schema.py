"""Tests for the settings model and pipeline factory."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from photocache.config.hierarchy import load_config_hierarchy
from photocache.config.schema import PhotoCacheSettings, build_monitor, build_pipeline


class TestPhotoCacheSettings:
    def test_defaults(self):
        settings = PhotoCacheSettings()
        assert settings.memory_count_limit == 50
        assert settings.jpeg_quality == 90
        assert isinstance(settings.cache_dir, Path)

    def test_from_config(self):
        settings = PhotoCacheSettings.from_config(load_config_hierarchy(scale=2.0))
        assert settings.scale == 2.0
        assert settings.cache_dir.name == "images"

    def test_ignores_unknown_keys(self):
        settings = PhotoCacheSettings.from_config({"unknown": 1})
        assert not hasattr(settings, "unknown")

    @pytest.mark.parametrize(
        "field,value",
        [
            ("jpeg_quality", 0),
            ("jpeg_quality", 100),
            ("scale", 0),
            ("decode_workers", 0),
            ("max_tracked_keys", 0),
            ("memory_count_limit", -1),
        ],
    )
    def test_rejects_invalid(self, field, value):
        with pytest.raises(ValidationError):
            PhotoCacheSettings(**{field: value})

    def test_string_values_coerced(self):
        settings = PhotoCacheSettings.from_config({"decode_workers": "3", "cache_dir": "/tmp/x"})
        assert settings.decode_workers == 3
        assert settings.cache_dir == Path("/tmp/x")


class TestBuildPipeline:
    def test_wires_settings(self, cache_dir):
        settings = PhotoCacheSettings(
            cache_dir=cache_dir, memory_count_limit=7, memory_cost_limit=1024, decode_workers=2
        )
        pipeline = build_pipeline(settings)
        try:
            assert pipeline.memory.count_limit == 7
            assert pipeline.memory.total_cost_limit == 1024
            assert pipeline.disk.directory == cache_dir
            assert cache_dir.is_dir()
        finally:
            pipeline.close()

    def test_disk_disabled(self, cache_dir):
        pipeline = build_pipeline(PhotoCacheSettings(cache_dir=cache_dir, disk_disabled=True))
        try:
            assert pipeline.disk is None
        finally:
            pipeline.close()


class TestBuildMonitor:
    def test_threshold_from_settings(self):
        monitor = build_monitor(PhotoCacheSettings(pressure_threshold_mb=256))
        assert monitor.threshold_bytes == 256 * 1024 * 1024

    def test_defaults(self):
        assert build_monitor().threshold_bytes == 1024 * 1024 * 1024
