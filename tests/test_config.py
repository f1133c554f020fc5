import pytest
from pydantic import ValidationError

from a11y_insights.platform.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("BQ_PROJECT_ID", "GCLOUD_PROJECT", "BQ_DATASET", "AI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = Settings(_env_file=None)

    assert config.BQ_ENABLED is False
    assert config.BQ_INSERT_CHUNK_SIZE == 500
    assert config.AI_MAX_RETRIES == 2
    assert config.AI_FALLBACK_ON_MODEL_ERROR is False
    assert config.AI_API_KEY is None


def test_project_id_prefers_bq_project_id(monkeypatch):
    monkeypatch.setenv("GCLOUD_PROJECT", "gcloud-proj")
    monkeypatch.setenv("BQ_PROJECT_ID", "bq-proj")

    assert Settings(_env_file=None).BQ_PROJECT_ID == "bq-proj"


def test_project_id_falls_back_to_gcloud_project(monkeypatch):
    monkeypatch.setenv("GCLOUD_PROJECT", "gcloud-proj")

    assert Settings(_env_file=None).BQ_PROJECT_ID == "gcloud-proj"


def test_blank_project_id_falls_through_to_gcloud_project(monkeypatch):
    monkeypatch.setenv("BQ_PROJECT_ID", "")
    monkeypatch.setenv("GCLOUD_PROJECT", "gcloud-proj")

    assert Settings(_env_file=None).BQ_PROJECT_ID == "gcloud-proj"


def test_enabled_flag_from_env(monkeypatch):
    monkeypatch.setenv("BQ_ENABLED", "1")
    monkeypatch.setenv("BQ_DATASET", "  ")

    config = Settings(_env_file=None)

    assert config.BQ_ENABLED is True
    assert config.BQ_DATASET is None


@pytest.mark.parametrize("field, value", [
    ("BQ_INSERT_CHUNK_SIZE", 501),
    ("BQ_INSERT_CHUNK_SIZE", 0),
    ("AI_MAX_RETRIES", 9),
    ("AI_REQUEST_TIMEOUT_SEC", 0),
    ("AI_MAX_FINDINGS_PER_RULE", 0),
])
def test_out_of_range_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
