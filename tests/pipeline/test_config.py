from __future__ import annotations

from pathlib import Path

import pytest
from mimir_ingest.core.config import Settings
from mimir_ingest.pipeline.config import ErrorPolicy, PipelineConfig


def test_from_settings_uses_defaults() -> None:
    s = Settings(_env_file=None)
    cfg = PipelineConfig.from_settings(s, index_type="admins", data_source="osm", region="corse")

    assert cfg.working_dir == Path("work")
    assert cfg.handlers_dir == Path("mimirsbrunn")
    assert cfg.index_endpoint == "http://localhost:9200"
    assert cfg.topic == "state"
    assert cfg.error_policy is ErrorPolicy.AUTO_RESET


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("MIMIR_INGEST_ERROR_POLICY", "halt")
    monkeypatch.setenv("MIMIR_INGEST_TOPIC", "ingest")
    s = Settings(_env_file=None)
    cfg = PipelineConfig.from_settings(s, index_type="addresses", data_source="bano", region="75")
    assert cfg.error_policy is ErrorPolicy.HALT
    assert cfg.topic == "ingest"


def test_empty_region_rejected() -> None:
    with pytest.raises(ValueError, match="region"):
        PipelineConfig.from_settings(
            Settings(_env_file=None), index_type="addresses", data_source="bano", region=""
        )
