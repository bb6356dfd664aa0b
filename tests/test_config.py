"""Tests for settings loading and the CLI startup checks."""

import os

import pytest
from click.testing import CliRunner
from pydantic import ValidationError

from hookdeploy.config import ConfigError, DeployConfig, ServerConfig, Settings, load_settings
from hookdeploy.main import HookDeploy, cli


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.upper().startswith("HOOKDEPLOY_"):
            monkeypatch.delenv(name)
    # Keep the default config.yaml lookup away from the real home directory
    monkeypatch.setenv("HOOKDEPLOY_CONFIG_DIR", str(tmp_path / "config"))


class TestDefaults:
    def test_server_defaults(self):
        cfg = ServerConfig()
        assert cfg.bind == "0.0.0.0"
        assert cfg.port == 6666
        assert cfg.max_body_size == 1024 * 1024

    def test_deploy_defaults(self):
        cfg = DeployConfig()
        assert cfg.script == ""
        assert cfg.interpreter == "/bin/bash"
        assert cfg.timeout == 30.0

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            DeployConfig(timeout=0)

    def test_port_range(self):
        with pytest.raises(ValidationError):
            ServerConfig(port=70000)

    def test_secret_not_in_repr(self):
        settings = Settings(secret="hunter2")
        assert "hunter2" not in repr(settings)
        assert settings.get_secret() == b"hunter2"

    def test_log_file_defaults_to_data_dir(self, tmp_path):
        settings = Settings(data_dir=str(tmp_path))
        assert settings.get_log_file() == tmp_path / "webhook-deploy.log"

    def test_log_file_override(self, tmp_path):
        settings = Settings(deploy={"log_file": str(tmp_path / "custom.log")})
        assert settings.get_log_file() == (tmp_path / "custom.log").resolve()


class TestCheck:
    def test_missing_secret_and_script(self):
        with pytest.raises(ConfigError) as exc_info:
            Settings().check()
        assert "HOOKDEPLOY_SECRET" in str(exc_info.value)
        assert "HOOKDEPLOY_DEPLOY__SCRIPT" in str(exc_info.value)

    def test_missing_secret_only(self):
        with pytest.raises(ConfigError) as exc_info:
            Settings(deploy={"script": "/srv/deploy.sh"}).check()
        assert "secret" in str(exc_info.value)
        assert "deploy.script" not in str(exc_info.value)

    def test_complete_settings_pass(self):
        Settings(secret="s", deploy={"script": "/srv/deploy.sh"}).check()


class TestLoadSettings:
    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("HOOKDEPLOY_SECRET", "from-env")
        monkeypatch.setenv("HOOKDEPLOY_SERVER__PORT", "7000")
        monkeypatch.setenv("HOOKDEPLOY_DEPLOY__TIMEOUT", "12.5")
        settings = load_settings()
        assert settings.secret == "from-env"
        assert settings.server.port == 7000
        assert settings.deploy.timeout == 12.5

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "secret: from-yaml\n"
            "server:\n"
            "  port: 8080\n"
            "deploy:\n"
            "  script: /srv/deploy.sh\n"
            "  timeout: 45\n"
        )
        settings = load_settings(path)
        assert settings.secret == "from-yaml"
        assert settings.server.port == 8080
        assert settings.server.bind == "0.0.0.0"
        assert settings.deploy.script == "/srv/deploy.sh"
        assert settings.deploy.timeout == 45.0

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("server:\n  port: 8080\n  bind: 127.0.0.1\n")
        monkeypatch.setenv("HOOKDEPLOY_SERVER__PORT", "9090")
        settings = load_settings(path)
        assert settings.server.port == 9090
        assert settings.server.bind == "127.0.0.1"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "alt.yaml"
        path.write_text("log_level: DEBUG\n")
        monkeypatch.setenv("HOOKDEPLOY_CONFIG", str(path))
        assert load_settings().log_level == "DEBUG"

    def test_default_config_dir(self, tmp_path):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("deploy:\n  interpreter: /bin/sh\n")
        assert load_settings().deploy.interpreter == "/bin/sh"

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "nope.yaml")
        assert settings.server.port == 6666


class TestApp:
    async def test_start_writes_startup_entry(self, tmp_path):
        settings = Settings(
            secret="s",
            data_dir=str(tmp_path),
            server={"bind": "127.0.0.1", "port": 0},
            deploy={"script": "/srv/deploy.sh"},
        )
        app = HookDeploy(settings)
        await app.start()
        await app.stop()

        log_file = tmp_path / "webhook-deploy.log"
        assert log_file.read_text().rstrip().endswith("] Starting Webhook Deploy Server...")


class TestCli:
    def test_missing_secret_exits_nonzero(self):
        result = CliRunner().invoke(cli, [])
        assert result.exit_code != 0
        assert "HOOKDEPLOY_SECRET" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestSourcePriority:
    def test_env_beats_yaml_for_nested_deploy_key(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(
            "deploy:\n"
            "  script: /srv/deploy.sh\n"
            "  timeout: 45\n"
        )
        monkeypatch.setenv("HOOKDEPLOY_DEPLOY__TIMEOUT", "5")
        settings = load_settings(path)
        assert settings.deploy.timeout == 5.0
        assert settings.deploy.script == "/srv/deploy.sh"

    def test_env_beats_yaml_for_top_level_key(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("secret: from-yaml\nlog_level: DEBUG\n")
        monkeypatch.setenv("HOOKDEPLOY_SECRET", "from-env")
        settings = load_settings(path)
        assert settings.secret == "from-env"
        assert settings.log_level == "DEBUG"

    def test_loaded_from_file_is_settings(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("log_json: true\n")
        settings = load_settings(path)
        assert isinstance(settings, Settings)
        assert settings.log_json is True

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_settings(path).server.port == 6666
