"""Tests for the GenAI lab configuration."""

from pathlib import Path

import pytest

from oneclick.core.errors import InvalidConfigError, MissingConfigError
from oneclick.lab.config import DEFAULT_LIBRARIES, LabConfig, load_lab_config


class TestDefaults:
    def test_stock_appliance(self):
        config = LabConfig()
        assert config.user == "opc"
        assert config.owner == "opc:opc"
        assert config.database.container_name == "23ai"
        assert config.database.password.get_secret_value() == "database123"
        assert config.runtime.jupyterlab_version == "4.2.5"
        assert config.firewall_ports == [8888, 8501, 1521]
        assert "torch==2.5.0" in config.runtime.libraries

    def test_paths_derive_from_user(self):
        config = LabConfig(user="lab")
        assert config.database.data_dir == Path("/home/lab/oradata")
        assert config.runtime.venv == Path("/home/lab/.venvs/genai")
        assert config.content.destination == Path("/home/lab/code")
        assert Path("/home/lab/bin") in config.lab_dirs

    def test_explicit_paths_win(self, tmp_path):
        config = LabConfig(database={"data_dir": tmp_path / "oradata"})
        assert config.database.data_dir == tmp_path / "oradata"

    def test_libraries_default_is_a_copy(self):
        LabConfig().runtime.libraries.append("extra")
        assert "extra" not in DEFAULT_LIBRARIES

    def test_password_not_leaked_in_repr(self):
        assert "database123" not in repr(LabConfig())


class TestYaml:
    def test_from_yaml(self):
        config = LabConfig.from_yaml(
            """
user: lab
group: wheel
database:
  password: s3cret
  memory_mb: 4096
runtime:
  version_manager: pyenv
  pyenv_version: "3.11.9"
firewall_ports: [8888]
"""
        )
        assert config.owner == "lab:wheel"
        assert config.database.password.get_secret_value() == "s3cret"
        assert config.database.memory_mb == 4096
        assert config.runtime.version_manager == "pyenv"
        assert config.firewall_ports == [8888]

    def test_empty_document_is_defaults(self):
        assert LabConfig.from_yaml("").user == "opc"

    def test_invalid_yaml(self):
        with pytest.raises(InvalidConfigError):
            LabConfig.from_yaml("user: [unclosed")

    def test_non_mapping(self):
        with pytest.raises(InvalidConfigError):
            LabConfig.from_yaml("- a\n- b\n")

    def test_validation_error(self):
        with pytest.raises(InvalidConfigError) as exc:
            LabConfig.from_yaml("database:\n  memory_mb: 10\n")
        assert "memory_mb" in str(exc.value)

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "lab.yaml"
        path.write_text("user: lab\n")
        assert load_lab_config(path).user == "lab"

    def test_missing_file(self, tmp_path):
        with pytest.raises(MissingConfigError) as exc:
            LabConfig.from_yaml_file(tmp_path / "missing.yaml")
        assert exc.value.key == "lab_config"

    def test_unreadable_path(self, tmp_path):
        with pytest.raises(InvalidConfigError):
            LabConfig.from_yaml_file(tmp_path)


class TestEnv:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ONECLICK_LAB_USER", "lab")
        monkeypatch.setenv("ONECLICK_LAB_DB_PASSWORD", "pw")
        monkeypatch.setenv("ONECLICK_LAB_JUPYTER_PORT", "9999")
        config = load_lab_config()
        assert config.user == "lab"
        assert config.database.password.get_secret_value() == "pw"
        assert config.jupyter.port == 9999
        assert config.runtime.venv == Path("/home/lab/.venvs/genai")

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("ONECLICK_LAB_USER", "lab")
        assert LabConfig.from_env(user="other").user == "other"
