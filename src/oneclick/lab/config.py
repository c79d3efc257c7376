"""GenAI lab configuration.

Everything the lab plan needs to know about the appliance it builds: the
lab user, the database container, the Python runtime and its libraries,
the lab content source, JupyterLab, firewall ports and OS packages.

Defaults reproduce the stock Oracle Linux 8 appliance. Override them from a
YAML file (``LabConfig.from_yaml_file``) or from ``ONECLICK_LAB_*``
environment variables (``LabConfig.from_env``).

Paths left unset are derived from the lab user's home directory.

Example YAML::

    user: opc
    database:
      password: change-me
      memory_mb: 4096
    runtime:
      jupyterlab_version: "4.2.5"
    firewall_ports: [8888, 8501, 1521]
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, model_validator

from oneclick.core.errors import InvalidConfigError, MissingConfigError


DEFAULT_LIBRARIES = [
    "torch==2.5.0",
    "transformers==4.46.3",
    "sentence-transformers==3.3.1",
    "chromadb==0.5.3",
    "chroma-hnswlib==0.7.3",
    "oracle-ads",
    "oci",
    "oracledb",
    "streamlit==1.36.0",
    "langchain==0.2.6",
    "langchain-community==0.2.6",
    "langchain-core==0.2.11",
    "langchain-text-splitters==0.2.2",
    "langsmith==0.1.83",
    "pypdf==4.2.0",
    "python-multipart==0.0.9",
]

DEFAULT_BASE_PACKAGES = [
    "dnf-plugins-core", "git", "unzip", "jq", "tar", "make", "gcc", "gcc-c++",
    "bzip2", "bzip2-devel", "zlib-devel", "openssl-devel", "readline-devel",
    "libffi-devel", "wget", "curl", "which", "xz", "python3", "python3-pip",
    "podman", "firewalld", "patch", "ncurses-devel",
]


class DatabaseConfig(BaseModel):
    image: str = "container-registry.oracle.com/database/free:latest"
    container_name: str = "23ai"
    password: SecretStr = SecretStr("database123")
    pdb: str = "FREEPDB1"
    data_dir: Path | None = Field(default=None, description="Host directory mounted as oradata")
    data_owner: str = "54321:54321"
    data_marker: str = Field(default="FREE", description="Subdirectory that exists once the DB was created")
    memory_mb: int = Field(default=2048, ge=1024)
    ready_line: str = "DATABASE IS READY TO USE!"
    listener_port: int = 1521
    vector_user: str = "vector"
    vector_password: SecretStr = SecretStr("vector")
    vector_memory_size: str = "512M"
    tablespace: str = "tbs2"
    undo_tablespace: str = "undots2"
    temp_tablespace: str = "temp_demo"
    readiness_timeout: float | None = Field(default=None, gt=0)
    listener_timeout: float = Field(default=180.0, gt=0)
    listener_interval: float = Field(default=3.0, gt=0)
    max_restarts: int = Field(default=3, ge=0)
    service_name: str = "genai-23ai"


class RuntimeConfig(BaseModel):
    version_manager: Literal["dnf-module", "pyenv"] = "dnf-module"
    python_module: str = "python39"
    python_packages: list[str] = Field(default_factory=lambda: ["python39", "python39-pip"])
    python: str = "python3.9"
    pyenv_version: str = "3.11.9"
    venv: Path | None = None
    libraries: list[str] = Field(default_factory=lambda: list(DEFAULT_LIBRARIES))
    jupyterlab_version: str = "4.2.5"
    kernel_name: str = "python3"
    kernel_display_name: str = "Python 3 (ipykernel)"
    install_oci_cli: bool = True
    oci_cli_installer: str = "https://raw.githubusercontent.com/oracle/oci-cli/master/scripts/install/install.sh"
    path_profile: Path = Path("/etc/profile.d/genai-path.sh")
    preload_models: list[str] = Field(default_factory=lambda: ["all-MiniLM-L12-v2"])


class ContentConfig(BaseModel):
    repo_url: str = "https://github.com/ou-developers/css-navigator.git"
    ref: str = "main"
    archive_url: str | None = None
    subset_path: str = "gen-ai"
    destination: Path | None = None
    link_path: Path | None = Path("/opt/code")
    seed_dir: Path = Path("/opt/genai")
    labs_repo_url: str | None = "https://github.com/ou-developers/ou-generativeai-pro.git"
    labs_archive_url: str | None = None
    labs_subset_path: str = "labs"
    labs_destination: Path | None = None
    seed_config: dict[str, str] = Field(
        default_factory=lambda: {
            "model_name": "cohere.command-r-16k",
            "embedding_model_name": "cohere.embed-english-v3.0",
            "endpoint": "https://inference.generativeai.eu-frankfurt-1.oci.oraclecloud.com",
            "compartment_ocid": "ocid1.compartment.oc1....replace_me...",
        }
    )
    seed_faq: str = (
        "faq | What are Always Free services?=====Always Free services are part of Oracle Cloud Free Tier."
    )


class JupyterConfig(BaseModel):
    port: int = 8888
    ip: str = "0.0.0.0"
    service_name: str = "genai-jupyter"
    restart_sec: int = 10
    readiness_timeout: float = Field(default=300.0, gt=0)


class LabConfig(BaseModel):
    """Complete description of the GenAI lab appliance."""

    user: str = "opc"
    group: str | None = None
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)
    jupyter: JupyterConfig = Field(default_factory=JupyterConfig)
    firewall_ports: list[int] = Field(default_factory=lambda: [8888, 8501, 1521])
    base_packages: list[str] = Field(default_factory=lambda: list(DEFAULT_BASE_PACKAGES))
    repos_enable: list[str] = Field(
        default_factory=lambda: ["ol8_addons", "ol8_appstream", "ol8_baseos_latest"]
    )
    repos_disable: list[str] = Field(
        default_factory=lambda: ["ol8_ksplice", "ol8_MySQL84", "ol8_MySQL84_community"]
    )
    containers_conf: Path = Path("/etc/containers/containers.conf")
    lab_dirs: list[Path] | None = None

    @property
    def home(self) -> Path:
        return Path("/home") / self.user

    @property
    def owner(self) -> str:
        return f"{self.user}:{self.group or self.user}"

    @model_validator(mode="after")
    def _derive_paths(self) -> LabConfig:
        home = self.home
        if self.database.data_dir is None:
            self.database.data_dir = home / "oradata"
        if self.runtime.venv is None:
            self.runtime.venv = home / ".venvs" / "genai"
        if self.content.destination is None:
            self.content.destination = home / "code"
        if self.content.labs_destination is None:
            self.content.labs_destination = home / "labs"
        if self.lab_dirs is None:
            self.lab_dirs = [self.content.seed_dir, home / "code", home / "bin"]
        return self

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, content: str) -> LabConfig:
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise InvalidConfigError("lab_config", "<yaml>", f"Invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise InvalidConfigError("lab_config", type(data).__name__, "Lab config must be a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidConfigError("lab_config", "<yaml>", str(e)) from e

    @classmethod
    def from_yaml_file(cls, path: Path | str) -> LabConfig:
        try:
            content = Path(path).read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise MissingConfigError("lab_config", f"Lab config not found: {path}") from e
        except OSError as e:
            raise InvalidConfigError("lab_config", str(path), f"Cannot read lab config: {e}") from e
        return cls.from_yaml(content)

    @classmethod
    def from_env(cls, **overrides: Any) -> LabConfig:
        """Create config from ONECLICK_LAB_* environment variables."""
        env_map = {
            "user": "ONECLICK_LAB_USER",
            "db_password": "ONECLICK_LAB_DB_PASSWORD",
            "db_image": "ONECLICK_LAB_DB_IMAGE",
            "jupyter_port": "ONECLICK_LAB_JUPYTER_PORT",
        }
        values: dict[str, Any] = {}
        database: dict[str, Any] = {}
        jupyter: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is None:
                continue
            if field_name == "db_password":
                database["password"] = env_val
            elif field_name == "db_image":
                database["image"] = env_val
            elif field_name == "jupyter_port":
                jupyter["port"] = int(env_val)
            else:
                values[field_name] = env_val
        if database:
            values["database"] = database
        if jupyter:
            values["jupyter"] = jupyter
        values.update(overrides)
        return cls(**values)


def load_lab_config(path: Path | str | None = None) -> LabConfig:
    """YAML file when given, otherwise defaults plus environment overrides."""
    if path is not None:
        return LabConfig.from_yaml_file(path)
    return LabConfig.from_env()


__all__ = [
    "LabConfig",
    "DatabaseConfig",
    "RuntimeConfig",
    "ContentConfig",
    "JupyterConfig",
    "load_lab_config",
    "DEFAULT_LIBRARIES",
    "DEFAULT_BASE_PACKAGES",
]
