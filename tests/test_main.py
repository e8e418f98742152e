import logging

import pytest

from medbook.main import main

_VARS = ("SERVER_PORT", "SERVER_BODY_LIMIT", "SERVER_TIMEOUT", "DATABASE_URL")


@pytest.fixture
def clean_env(monkeypatch, tmp_path, caplog):
    monkeypatch.chdir(tmp_path)
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    caplog.set_level(logging.DEBUG)
    return monkeypatch


def test_missing_environment_fails(clean_env, caplog):
    assert main([]) == 1
    assert "Failed to load ENV" in caplog.text
    assert "SERVER_PORT is invalid" in caplog.text


def test_invalid_port_fails(clean_env, caplog):
    clean_env.setenv("SERVER_PORT", "abc")
    clean_env.setenv("SERVER_BODY_LIMIT", "10")
    clean_env.setenv("SERVER_TIMEOUT", "30")
    clean_env.setenv("DATABASE_URL", "sqlite://")
    assert main([]) == 1
    assert "Failed to load ENV" in caplog.text


def test_unusable_database_url_fails(clean_env, caplog):
    clean_env.setenv("SERVER_PORT", "8080")
    clean_env.setenv("SERVER_BODY_LIMIT", "10")
    clean_env.setenv("SERVER_TIMEOUT", "30")
    clean_env.setenv("DATABASE_URL", "nosuchdriver://localhost/db")
    assert main([]) == 1
    assert "ENV has been loaded" in caplog.text
    assert "Failed to establish connection to Postgres" in caplog.text


def test_unknown_argument_is_rejected(clean_env):
    with pytest.raises(SystemExit) as excinfo:
        main(["--bogus"])
    assert excinfo.value.code == 2