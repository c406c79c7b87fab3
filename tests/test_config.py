"""
Tests for configuration loading
"""
import pytest

from construct_api.config import apply_env_overrides, load_settings


def test_defaults_without_file(tmp_path):
    settings = load_settings(str(tmp_path / "missing.yaml"), environ={})
    assert settings.environment == "development"
    assert settings.registration.open
    assert settings.rate_limit.max_per_window == 5
    assert settings.rate_limit.min_interval_seconds == 60
    assert settings.admin.password is None


def test_yaml_then_env(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "environment: production\n"
        "storage:\n  backend: local\n  data_dir: /srv/data\n"
        "registration:\n  campuses:\n    North:\n      email_domain: north.edu\n      batches: [Batch 2025]\n",
        encoding="utf-8",
    )
    environ = {
        "ADMIN_PASSWORD": "hunter2",
        "DATA_DIR": "/tmp/override",
        "SUBMISSION_MAX_PER_WINDOW": "9",
        "REGISTRATION_CLOSED": "true",
        "CORS_ORIGINS": "https://a.example, https://b.example",
    }
    settings = load_settings(str(path), environ=environ)
    assert settings.is_production
    assert settings.admin.password == "hunter2"
    assert settings.storage.backend == "local"
    assert settings.storage.data_dir == "/tmp/override"
    assert settings.rate_limit.max_per_window == 9
    assert not settings.registration.open
    assert settings.registration.campuses["North"].batches == ["Batch 2025"]
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_config_path_from_environment(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("submissions:\n  open: false\n", encoding="utf-8")
    settings = load_settings(environ={"CONSTRUCT_CONFIG": str(path)})
    assert not settings.submissions.open


def test_submission_open_false_closes():
    data = apply_env_overrides({}, {"SUBMISSION_OPEN": "false"})
    assert data["submissions"]["open"] is False
    assert apply_env_overrides({}, {"SUBMISSION_OPEN": "true"}) == {}


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(str(path), environ={})
