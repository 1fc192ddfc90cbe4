"""
Test: Env loading and duration parsing

1. Defaults apply when nothing is configured
2. Environment variables override defaults
3. A .env file overrides environment variables
4. An explicit override model wins over both
5. Duration strings are parsed into seconds

Run with: pytest tests/unit/env/test_env.py
"""

import os

import pytest

from compilefarm.env import Env, TimeParser, load_env


def test_defaults(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TMPDIR", raising=False)

    env = load_env(Env)

    assert env.COMPILEFARM_CONNECT_TIMEOUT == "4s"
    assert env.COMPILEFARM_STAGING_ATTEMPTS == 8
    assert env.get_tmp_top() == "/tmp"
    assert env.get_tunnel_remote_command() == ["distccd", "--inetd"]
    assert env.get_lock_directory().endswith(os.path.join(".compilefarm", "lock"))


def test_environment_variables(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COMPILEFARM_LOCAL_SLOTS", "3")
    monkeypatch.setenv("COMPILEFARM_TMPDIR", "/var/tmp/builds")

    env = load_env(Env)

    assert env.COMPILEFARM_LOCAL_SLOTS == 3
    assert env.get_tmp_top() == "/var/tmp/builds"


def test_tmpdir_fallback(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TMPDIR", "/scratch")

    assert load_env(Env).get_tmp_top() == "/scratch"


def test_env_file(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("COMPILEFARM_STAGING_ATTEMPTS", "2")

    env_file = tmp_path / "compilefarm.env"
    env_file.write_text(
        "COMPILEFARM_STAGING_ATTEMPTS=5\n"
        "COMPILEFARM_TUNNEL_REMOTE_COMMAND=/opt/distcc/bin/distccd --inetd\n"
    )

    env = load_env(Env, env_file=str(env_file))

    assert env.COMPILEFARM_STAGING_ATTEMPTS == 5
    assert env.get_tunnel_remote_command() == ["/opt/distcc/bin/distccd", "--inetd"]


def test_override(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COMPILEFARM_CONNECT_TIMEOUT", "10s")

    env = load_env(Env, override=Env(COMPILEFARM_CONNECT_TIMEOUT="1s"))

    assert env.COMPILEFARM_CONNECT_TIMEOUT == "1s"


@pytest.mark.parametrize(
    "duration,seconds",
    [
        ("4s", 4.0),
        ("1m", 60.0),
        ("1m30s", 90.0),
        ("0.5s", 0.5),
        ("2h", 7200.0),
        ("10", 10.0),
        ("250ms", 0.25),
    ],
)
def test_time_parser(duration: str, seconds: float):
    assert TimeParser().parse(duration) == seconds


def test_time_parser_rejects_garbage():
    with pytest.raises(ValueError):
        TimeParser().parse("soon")
