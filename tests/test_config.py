"""Tests for environment profile selection and settings overrides."""
from __future__ import annotations

import pytest

from nutriapp_tests import config
from nutriapp_tests.config import NutriAppTestConfig, PROFILES

ENV_VARS = (
    "CI",
    "GITHUB_ACTIONS",
    "GITHUB_RUN_ID",
    "NUTRIAPP_ENV",
    "NUTRIAPP_BASE_URL",
    "CYPRESS_baseUrl",
    "NUTRIAPP_USER_EMAIL",
    "NUTRIAPP_USER_PASSWORD",
    "NUTRIAPP_REPROVISION_DELAY",
    "NUTRIAPP_ARTIFACTS_DIR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_local_profile_by_default():
    cfg = NutriAppTestConfig()
    assert cfg.profile.name == "local"
    assert cfg.base_url == "http://localhost:3000"
    assert not cfg.base_url_explicit
    assert cfg.run_id is None
    assert cfg.retries == 0
    assert cfg.request_timeout == 15.0


def test_ci_flag_selects_ci_profile(monkeypatch):
    monkeypatch.setenv("CI", "true")
    monkeypatch.setenv("GITHUB_RUN_ID", "4242")

    cfg = NutriAppTestConfig()

    assert cfg.profile.name == "ci"
    assert cfg.profile.video is True
    assert cfg.retries == 2
    assert cfg.run_id == "4242"


def test_run_id_unknown_in_ci_without_github_run_id(monkeypatch):
    monkeypatch.setenv("CI", "1")
    assert config.get_run_id() == "unknown"


def test_explicit_environment_wins_over_ci(monkeypatch):
    monkeypatch.setenv("CI", "true")
    monkeypatch.setenv("NUTRIAPP_ENV", "staging")

    cfg = NutriAppTestConfig()

    assert cfg.profile.name == "staging"
    assert cfg.base_url == "https://staging.happytesting.com"
    assert cfg.retries == 3


def test_invalid_environment_name(monkeypatch):
    monkeypatch.setenv("NUTRIAPP_ENV", "production")
    with pytest.raises(ValueError, match="Invalid NUTRIAPP_ENV"):
        config.get_environment_name()


def test_base_url_precedence(monkeypatch):
    monkeypatch.setenv("CYPRESS_baseUrl", "http://cypress:3000/")
    assert NutriAppTestConfig().base_url == "http://cypress:3000"

    monkeypatch.setenv("NUTRIAPP_BASE_URL", "http://app:8080")
    cfg = NutriAppTestConfig()
    assert cfg.base_url == "http://app:8080"
    assert cfg.base_url_explicit


def test_profiles_share_viewport_and_keep_timeouts():
    for profile in PROFILES.values():
        assert (profile.viewport_width, profile.viewport_height) == (1280, 720)
    assert PROFILES["ci"].default_command_timeout == 15000
    assert PROFILES["local"].page_load_timeout == 60000
    assert PROFILES["staging"].response_timeout == 30000


def test_fixed_user_and_tuning_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("NUTRIAPP_USER_EMAIL", "fixed@nutriapp.com")
    monkeypatch.setenv("NUTRIAPP_USER_PASSWORD", "secret")
    monkeypatch.setenv("NUTRIAPP_REPROVISION_DELAY", "0.25")
    monkeypatch.setenv("NUTRIAPP_ARTIFACTS_DIR", str(tmp_path))

    cfg = NutriAppTestConfig()

    assert cfg.fixed_user_email == "fixed@nutriapp.com"
    assert cfg.fixed_user_password == "secret"
    assert cfg.reprovision_delay == 0.25
    assert cfg.artifacts_dir == tmp_path


def test_use_base_url_and_url_join():
    cfg = NutriAppTestConfig()
    with cfg.use_base_url("http://127.0.0.1:5999/"):
        assert cfg.base_url == "http://127.0.0.1:5999"
        assert cfg.url("/api/login") == "http://127.0.0.1:5999/api/login"
        assert cfg.url("dishes/new") == "http://127.0.0.1:5999/dishes/new"
    assert cfg.base_url == "http://localhost:3000"


def test_use_profile_restores_previous():
    cfg = NutriAppTestConfig()
    with cfg.use_profile("staging") as profile:
        assert profile.name == "staging"
        assert cfg.retries == 3
    assert cfg.profile.name == "local"
