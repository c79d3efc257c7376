"""GenAI lab provisioning plan.

Builds the ordered phase list that turns a fresh Oracle Linux 8 VM into the
GenAI lab appliance. Every step is an idempotent call on a capability, so
the whole plan is safe to run again after a crash or a reboot.

Phases (declared order; dependencies are checked, never reordered)::

    packages             growfs, per-repo config, base packages, podman, containers.conf,
                         firewalld, lab directories
    database-container   data dir, image pull, container run
                         (gated: alive AND (healthy OR ready line in logs))
    database-config      open PDB + listener, wait for listener, tablespaces, vector user,
                         vector memory, connectivity check
    python-runtime       interpreter, venv, heavy libraries, JupyterLab,
                         verification, kernel, embedding models, OCI CLI
    lab-content          sparse fetch (archive fallback) of the content and labs
                         repos, symlink, seed files, firewall ports
    services             database + JupyterLab units

Related Modules:
    - :mod:`oneclick.lab.config` — LabConfig
    - :mod:`oneclick.orchestration.sequencer` — runs the plan
    - :mod:`oneclick.services.registrar` — registers the units

Tags:
    lab, plan, provisioning, oracle, jupyter
"""

from __future__ import annotations

import json
import os
import shlex
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx

from oneclick.capabilities.commands import CommandRunner
from oneclick.capabilities.container import ContainerRuntime, HealthState, PodmanRuntime
from oneclick.capabilities.content import ContentFetcher, GitContentFetcher
from oneclick.capabilities.packages import DnfInstaller
from oneclick.capabilities.runtime import LibrarySpec, PipInstaller, PyenvManager, VirtualenvManager
from oneclick.capabilities.system import SystemTools
from oneclick.core.errors import CommandError, NetworkError
from oneclick.core.logging import get_logger
from oneclick.core.settings import OneClickSettings
from oneclick.execution.retry import (
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    RetryStrategy,
)
from oneclick.lab.config import LabConfig
from oneclick.orchestration.models import FailureClass, Phase, Step
from oneclick.readiness.predicates import (
    container_alive,
    container_healthy,
    exec_output_contains,
    http_ok,
    log_contains,
)
from oneclick.readiness.probe import ReadinessCheck, all_of, any_of
from oneclick.services.models import RestartPolicy, ServiceDeclaration, ServiceKind
from oneclick.services.registrar import ServiceRegistrar
from oneclick.services.systemd import ServiceSupervisor, SystemdSupervisor
from oneclick.state.markers import MarkerStore

logger = get_logger(__name__)

PACKAGES = "packages"
DATABASE_CONTAINER = "database-container"
DATABASE_CONFIG = "database-config"
PYTHON_RUNTIME = "python-runtime"
LAB_CONTENT = "lab-content"
SERVICES = "services"

CONTAINERS_CONF = """\
[engine]
cgroup_manager = "cgroupfs"
events_logger = "file"
"""

LOAD_PROPERTIES = '''\
class LoadProperties:
    def __init__(self):
        import json
        with open("config.txt") as f:
            js = json.load(f)
        self.model_name = js.get("model_name")
        self.embedding_model_name = js.get("embedding_model_name")
        self.endpoint = js.get("endpoint")
        self.compartment_ocid = js.get("compartment_ocid")

    def getModelName(self):
        return self.model_name

    def getEmbeddingModelName(self):
        return self.embedding_model_name

    def getEndpoint(self):
        return self.endpoint

    def getCompartment(self):
        return self.compartment_ocid
'''

ORACLE_ENV = ". /home/oracle/.bashrc; "

TOLERABLE = FailureClass.TOLERABLE


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


@dataclass
class LabCapabilities:
    """The collaborators the lab plan drives."""

    runner: CommandRunner
    packages: DnfInstaller
    containers: ContainerRuntime
    versions: PyenvManager
    venvs: VirtualenvManager
    pip: PipInstaller
    content: ContentFetcher
    system: SystemTools
    supervisor: ServiceSupervisor
    http: httpx.Client | None = None

    @classmethod
    def default(
        cls,
        config: LabConfig,
        settings: OneClickSettings,
        runner: CommandRunner | None = None,
    ) -> LabCapabilities:
        runner = runner or CommandRunner()
        return cls(
            runner=runner,
            packages=DnfInstaller(runner),
            containers=PodmanRuntime(runner),
            versions=PyenvManager(runner, user=config.user),
            venvs=VirtualenvManager(runner, user=config.user),
            pip=PipInstaller(runner, config.runtime.venv, user=config.user),
            content=GitContentFetcher(runner, ref=config.content.ref),
            system=SystemTools(runner),
            supervisor=SystemdSupervisor(runner, settings.unit_dir, settings.executable),
        )


# ---------------------------------------------------------------------------
# Service declarations
# ---------------------------------------------------------------------------


def database_service(config: LabConfig, store: MarkerStore) -> ServiceDeclaration:
    db = config.database
    return ServiceDeclaration(
        name=db.service_name,
        description=f"GenAI oneclick - Oracle database container {db.container_name}",
        exec_start=f"/usr/bin/podman start {db.container_name}",
        kind=ServiceKind.ONESHOT,
        restart=RestartPolicy.NEVER,
        wants=("network-online.target",),
        after=("network-online.target",),
        after_markers=(store.marker_ref(DATABASE_CONTAINER),),
        remain_after_exit=True,
        timeout_start_sec=0,
    )


def jupyter_service(config: LabConfig, store: MarkerStore) -> ServiceDeclaration:
    j = config.jupyter
    command = (
        f"source {config.runtime.venv}/bin/activate && exec jupyter lab "
        f'--ServerApp.token="" --ServerApp.password="" '
        f"--ip={j.ip} --port={j.port} --no-browser"
    )
    return ServiceDeclaration(
        name=j.service_name,
        description="GenAI JupyterLab",
        exec_start=f"/bin/bash -lc '{command}'",
        kind=ServiceKind.SIMPLE,
        restart=RestartPolicy.ON_FAILURE,
        restart_sec=j.restart_sec,
        wants=("network-online.target",),
        after=("network-online.target", config.database.service_name),
        after_markers=(store.marker_ref(PYTHON_RUNTIME),),
        user=config.user,
        group=config.group or config.user,
        working_directory=str(config.home),
        environment={"HOME": str(config.home)},
    )


def lab_services(config: LabConfig, store: MarkerStore) -> list[ServiceDeclaration]:
    """Units the ``services`` phase registers, in registration order."""
    return [database_service(config, store), jupyter_service(config, store)]


def provisioning_service(settings: OneClickSettings) -> ServiceDeclaration:
    """The oneshot unit that runs ``oneclick provision`` on every boot."""
    return ServiceDeclaration(
        name="genai-oneclick",
        description="GenAI oneclick provisioning",
        exec_start=f"{settings.executable} provision",
        kind=ServiceKind.ONESHOT,
        restart=RestartPolicy.NEVER,
        wants=("network-online.target",),
        after=("network-online.target",),
        remain_after_exit=True,
        timeout_start_sec=0,
    )


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


class LabPlanBuilder:
    """Builds the GenAI lab phases from config, settings and capabilities."""

    def __init__(
        self,
        config: LabConfig,
        settings: OneClickSettings,
        caps: LabCapabilities,
        store: MarkerStore,
    ) -> None:
        self.config = config
        self.settings = settings
        self.caps = caps
        self.store = store

    # ── helpers ─────────────────────────────────────────────────────────

    def retried(self, max_attempts: int | None = None) -> RetryStrategy:
        return LinearBackoff(
            max_attempts=max_attempts or self.settings.default_max_attempts,
            base_delay=self.settings.default_base_delay,
        )

    def network_retry(self) -> RetryStrategy:
        """Jittered exponential backoff that only retries network failures."""
        return ExponentialBackoff(
            max_attempts=self.settings.default_max_attempts,
            base_delay=self.settings.default_base_delay,
            max_delay=120.0,
            jitter=True,
            retryable_errors=frozenset({NetworkError}),
        )

    def step(
        self,
        step_id: str,
        action: Callable[[], object],
        *,
        retry: RetryStrategy | None = None,
        failure_class: FailureClass = FailureClass.FATAL,
        ready_when: ReadinessCheck | None = None,
        tolerated_signals: tuple[str, ...] = (),
        description: str = "",
    ) -> Step:
        return Step(
            id=step_id,
            action=action,
            retry=retry or NoRetry(),
            failure_class=failure_class,
            ready_when=ready_when,
            tolerated_signals=tolerated_signals,
            description=description,
        )

    def sqlplus(self, script: str, connect: str = "/ as sysdba") -> str:
        """Run a SQL*Plus script inside the database container."""
        db = self.config.database
        result = self.caps.containers.exec(
            db.container_name,
            ["bash", "-lc", ORACLE_ENV + f"sqlplus -S -L {shlex.quote(connect)}"],
            input=script,
        )
        if not result.ok:
            raise CommandError(
                f"sqlplus exited {result.exit_code} in {db.container_name}",
                returncode=result.exit_code,
                stdout=result.output,
            )
        return result.output

    # ── phases ──────────────────────────────────────────────────────────

    def phases(self) -> list[Phase]:
        return [
            self.packages_phase(),
            self.database_container_phase(),
            self.database_config_phase(),
            self.python_runtime_phase(),
            self.lab_content_phase(),
            self.services_phase(),
        ]

    def repo_steps(self) -> list[Step]:
        """One tolerable step per repository operation; a missing repo fails only its own step."""
        packages = self.caps.packages
        steps = [
            self.step(
                f"disable-repo-{repo}",
                lambda repo=repo: packages.disable_repos([repo]),
                failure_class=TOLERABLE,
            )
            for repo in self.config.repos_disable
        ]
        steps += [
            self.step(
                f"enable-repo-{repo}",
                lambda repo=repo: packages.enable_repos([repo]),
                failure_class=TOLERABLE,
            )
            for repo in self.config.repos_enable
        ]
        steps += [
            self.step("clean-metadata", packages.clean_metadata, failure_class=TOLERABLE),
            self.step(
                "refresh-metadata",
                packages.refresh_metadata,
                retry=self.retried(3),
                failure_class=TOLERABLE,
            ),
        ]
        return steps

    def packages_phase(self) -> Phase:
        cfg = self.config
        caps = self.caps

        def write_containers_conf() -> None:
            cfg.containers_conf.parent.mkdir(parents=True, exist_ok=True)
            cfg.containers_conf.write_text(CONTAINERS_CONF, encoding="utf-8")

        def create_lab_dirs() -> None:
            for directory in cfg.lab_dirs:
                directory.mkdir(parents=True, exist_ok=True)
            caps.system.chown(cfg.lab_dirs, cfg.owner)

        return Phase(
            PACKAGES,
            description="OS packages, container engine and lab directories",
            steps=[
                self.step("grow-filesystem", caps.system.grow_filesystem, failure_class=TOLERABLE),
                *self.repo_steps(),
                self.step(
                    "install-base-packages",
                    lambda: caps.packages.install(cfg.base_packages),
                    retry=self.retried(),
                ),
                self.step("verify-podman", caps.containers.version),
                self.step("configure-container-engine", write_containers_conf),
                self.step(
                    "enable-firewalld",
                    lambda: caps.system.enable_service("firewalld"),
                    failure_class=TOLERABLE,
                ),
                self.step("create-lab-directories", create_lab_dirs),
            ],
        )

    def database_readiness(self) -> ReadinessCheck:
        db = self.config.database
        containers = self.caps.containers
        return ReadinessCheck(
            target=db.container_name,
            predicate=all_of(
                container_alive(
                    containers,
                    db.container_name,
                    data_dir=db.data_dir / db.data_marker,
                    max_restarts=db.max_restarts,
                ),
                any_of(
                    container_healthy(containers, db.container_name),
                    log_contains(containers, db.container_name, db.ready_line),
                ),
            ),
            interval=self.settings.readiness_interval,
            timeout=db.readiness_timeout or self.settings.readiness_timeout,
            progress_every=self.settings.progress_every,
            description="database container alive and ready",
        )

    def database_container_phase(self) -> Phase:
        db = self.config.database
        caps = self.caps

        def prepare_data_dir() -> None:
            db.data_dir.mkdir(parents=True, exist_ok=True)
            caps.system.chown([db.data_dir], db.data_owner)

        def run_container() -> None:
            caps.containers.run(
                db.image,
                db.container_name,
                env={
                    "ORACLE_PWD": db.password.get_secret_value(),
                    "ORACLE_PDB": db.pdb,
                    "ORACLE_MEMORY": str(db.memory_mb),
                },
                volumes={str(db.data_dir): "/opt/oracle/oradata:z"},
                options=["--network=host"],
            )

        def already_running() -> bool:
            return (
                caps.containers.is_running(db.container_name)
                and caps.containers.inspect_health(db.container_name) == HealthState.HEALTHY
            )

        return Phase(
            DATABASE_CONTAINER,
            depends_on={PACKAGES},
            completed_when=already_running,
            description="Oracle database container",
            steps=[
                self.step("prepare-data-dir", prepare_data_dir, failure_class=TOLERABLE),
                self.step(
                    "pull-image",
                    lambda: caps.containers.pull(db.image),
                    retry=self.retried(),
                    failure_class=TOLERABLE,
                ),
                self.step(
                    "run-container",
                    run_container,
                    retry=self.retried(),
                    ready_when=self.database_readiness(),
                ),
            ],
        )

    def database_config_phase(self) -> Phase:
        db = self.config.database
        signals = tuple(self.settings.tolerated_signals)
        vector_password = db.vector_password.get_secret_value()

        open_pdb = f"""WHENEVER SQLERROR CONTINUE
ALTER PLUGGABLE DATABASE {db.pdb} OPEN;
ALTER PLUGGABLE DATABASE {db.pdb} SAVE STATE;
ALTER SYSTEM SET LOCAL_LISTENER="(ADDRESS=(PROTOCOL=TCP)(HOST=0.0.0.0)(PORT={db.listener_port}))" SCOPE=BOTH;
ALTER SYSTEM REGISTER;
EXIT
"""
        tablespaces = f"""ALTER SESSION SET CONTAINER = {db.pdb};
WHENEVER SQLERROR CONTINUE
CREATE BIGFILE TABLESPACE {db.tablespace} DATAFILE '{db.tablespace}_01.dbf'
  SIZE 1G AUTOEXTEND ON NEXT 32M MAXSIZE UNLIMITED EXTENT MANAGEMENT LOCAL SEGMENT SPACE MANAGEMENT AUTO;
CREATE UNDO TABLESPACE {db.undo_tablespace} DATAFILE '{db.undo_tablespace}_01.dbf'
  SIZE 1G AUTOEXTEND ON RETENTION GUARANTEE;
CREATE TEMPORARY TABLESPACE {db.temp_tablespace} TEMPFILE '{db.temp_tablespace}_01.dbf'
  SIZE 1G REUSE AUTOEXTEND ON NEXT 32M MAXSIZE UNLIMITED EXTENT MANAGEMENT LOCAL UNIFORM SIZE 1M;
EXIT
"""
        vector_user = f"""ALTER SESSION SET CONTAINER = {db.pdb};
SET DEFINE OFF
WHENEVER SQLERROR CONTINUE
CREATE USER {db.vector_user} IDENTIFIED BY "{vector_password}";
GRANT CREATE SESSION, CREATE TABLE, CREATE SEQUENCE, CREATE VIEW TO {db.vector_user};
ALTER USER {db.vector_user} DEFAULT TABLESPACE {db.tablespace} QUOTA UNLIMITED ON {db.tablespace};
EXIT
"""
        vector_memory = f"""WHENEVER SQLERROR CONTINUE
CREATE PFILE FROM SPFILE;
ALTER SYSTEM SET vector_memory_size = {db.vector_memory_size} SCOPE=SPFILE;
EXIT
"""

        def verify_connectivity() -> None:
            output = self.sqlplus(
                "SELECT 1 AS CONNECTION_OK FROM DUAL;\nEXIT\n",
                connect=f"{db.vector_user}/{vector_password}@127.0.0.1:{db.listener_port}/{db.pdb}",
            )
            if "CONNECTION_OK" not in output:
                raise CommandError("Connectivity check returned no rows", stdout=output)

        listener = ReadinessCheck(
            target=f"listener:{db.pdb}",
            predicate=exec_output_contains(
                self.caps.containers,
                db.container_name,
                ["bash", "-lc", ORACLE_ENV + "lsnrctl status"],
                f'Service "{db.pdb}"',
            ),
            interval=db.listener_interval,
            timeout=db.listener_timeout,
            progress_every=self.settings.progress_every,
        )

        return Phase(
            DATABASE_CONFIG,
            depends_on={DATABASE_CONTAINER},
            description="Pluggable database, listener and vector user",
            steps=[
                self.step(
                    "open-pdb",
                    lambda: self.sqlplus(open_pdb),
                    retry=self.retried(3),
                    failure_class=TOLERABLE,
                    tolerated_signals=signals,
                ),
                self.step(
                    "wait-for-listener",
                    lambda: None,
                    ready_when=listener,
                    failure_class=TOLERABLE,
                ),
                self.step(
                    "create-tablespaces",
                    lambda: self.sqlplus(tablespaces),
                    failure_class=TOLERABLE,
                    tolerated_signals=signals,
                ),
                self.step(
                    "create-vector-user",
                    lambda: self.sqlplus(vector_user),
                    failure_class=TOLERABLE,
                    tolerated_signals=signals,
                ),
                self.step(
                    "set-vector-memory",
                    lambda: self.sqlplus(vector_memory),
                    failure_class=TOLERABLE,
                    tolerated_signals=signals,
                ),
                self.step(
                    "verify-connectivity",
                    verify_connectivity,
                    retry=self.retried(3),
                    failure_class=TOLERABLE,
                    tolerated_signals=signals,
                ),
            ],
        )

    def python_runtime_phase(self) -> Phase:
        cfg = self.config
        rt = cfg.runtime
        caps = self.caps
        jupyterlab = LibrarySpec("jupyterlab", rt.jupyterlab_version)

        if rt.version_manager == "pyenv":
            python = f"{cfg.home}/.pyenv/versions/{rt.pyenv_version}/bin/python"
            interpreter_steps = [
                self.step("bootstrap-pyenv", caps.versions.bootstrap, retry=self.retried()),
                self.step(
                    "install-python",
                    lambda: caps.versions.install(rt.pyenv_version),
                    retry=self.retried(),
                ),
                self.step(
                    "activate-python",
                    lambda: caps.versions.activate(rt.pyenv_version, cfg.home / "labs"),
                    failure_class=TOLERABLE,
                ),
            ]
        else:
            python = rt.python
            interpreter_steps = [
                self.step(
                    "enable-python-module",
                    lambda: caps.packages.enable_module(rt.python_module),
                    retry=self.retried(),
                    failure_class=TOLERABLE,
                ),
                self.step(
                    "install-python",
                    lambda: caps.packages.install(rt.python_packages),
                    retry=self.retried(),
                ),
            ]

        def create_venv() -> None:
            caps.venvs.ensure(rt.venv, python)
            caps.venvs.activate_on_login(rt.venv)

        def verify_jupyterlab() -> None:
            try:
                caps.pip.run_tool("jupyter", "lab", "--version")
            except CommandError as exc:
                logger.warning("lab.jupyterlab_missing", error=str(exc))
                caps.pip.install([jupyterlab], force_reinstall=True)
                caps.pip.run_tool("jupyter", "lab", "--version")

        def preload_models() -> None:
            for model in rt.preload_models:
                caps.pip.run_tool(
                    "python", "-c",
                    f"from sentence_transformers import SentenceTransformer; SentenceTransformer({model!r})",
                )

        def install_oci_cli() -> None:
            home = cfg.home
            caps.runner.run_shell(
                f"curl -sSL {shlex.quote(rt.oci_cli_installer)} -o /tmp/oci-install.sh && "
                f"bash /tmp/oci-install.sh --accept-all-defaults --exec-dir {home}/bin "
                f"--install-dir {home}/lib/oci-cli --update-path false",
                user=cfg.user,
            )
            rt.path_profile.parent.mkdir(parents=True, exist_ok=True)
            rt.path_profile.write_text(f"export PATH={home}/bin:$PATH\n", encoding="utf-8")

        steps = [
            *interpreter_steps,
            self.step("create-venv", create_venv, retry=self.retried()),
            self.step(
                "install-libraries",
                lambda: caps.pip.install([LibrarySpec.parse(lib) for lib in rt.libraries]),
                retry=self.retried(),
            ),
            self.step("install-jupyterlab", lambda: caps.pip.install([jupyterlab]), retry=self.retried()),
            self.step("verify-jupyterlab", verify_jupyterlab),
            self.step(
                "register-kernel",
                lambda: caps.pip.run_tool(
                    "python", "-m", "ipykernel", "install", "--user",
                    "--name", rt.kernel_name,
                    "--display-name", rt.kernel_display_name,
                ),
                failure_class=TOLERABLE,
            ),
        ]
        if rt.preload_models:
            steps.append(
                self.step(
                    "preload-embedding-models",
                    preload_models,
                    retry=self.retried(3),
                    failure_class=TOLERABLE,
                )
            )
        if rt.install_oci_cli:
            steps.append(
                self.step("install-oci-cli", install_oci_cli, retry=self.retried(3), failure_class=TOLERABLE)
            )

        return Phase(
            PYTHON_RUNTIME,
            depends_on={PACKAGES},
            description="Python interpreter, virtualenv, libraries and JupyterLab",
            steps=steps,
        )

    def lab_content_phase(self) -> Phase:
        cfg = self.config
        content = cfg.content
        caps = self.caps

        def fetch() -> None:
            caps.content.fetch(
                content.repo_url,
                content.subset_path,
                content.destination,
                archive_url=content.archive_url,
            )
            caps.system.chown([content.destination], cfg.owner)

        def fetch_labs() -> None:
            caps.content.fetch(
                content.labs_repo_url,
                content.labs_subset_path,
                content.labs_destination,
                archive_url=content.labs_archive_url,
            )
            caps.system.chown([content.labs_destination], cfg.owner)

        def link() -> None:
            link_path = content.link_path
            if link_path.is_symlink() or link_path.exists():
                if link_path.is_symlink() and Path(os.readlink(link_path)) == content.destination:
                    return
                if link_path.is_dir() and not link_path.is_symlink():
                    raise FileExistsError(f"{link_path} is a directory, not a link")
                link_path.unlink()
            link_path.parent.mkdir(parents=True, exist_ok=True)
            link_path.symlink_to(content.destination)

        def seed() -> None:
            seed_dir = content.seed_dir
            (seed_dir / "txt-docs").mkdir(parents=True, exist_ok=True)
            (seed_dir / "pdf-docs").mkdir(parents=True, exist_ok=True)
            config_file = seed_dir / "config.txt"
            if not config_file.exists():
                config_file.write_text(json.dumps(content.seed_config), encoding="utf-8")
            helper = seed_dir / "LoadProperties.py"
            if not helper.exists():
                helper.write_text(LOAD_PROPERTIES, encoding="utf-8")
            faq = seed_dir / "txt-docs" / "faq.txt"
            if not faq.exists():
                faq.write_text(content.seed_faq + "\n", encoding="utf-8")
            caps.system.chown([seed_dir], cfg.owner)

        def open_ports() -> None:
            caps.system.open_ports(cfg.firewall_ports)
            caps.system.reload_firewall()

        steps = [
            self.step("fetch-content", fetch, retry=self.network_retry(), failure_class=TOLERABLE),
            self.step("seed-files", seed, failure_class=TOLERABLE),
            self.step("open-firewall-ports", open_ports, failure_class=TOLERABLE),
        ]
        if content.link_path is not None:
            steps.insert(1, self.step("link-content", link, failure_class=TOLERABLE))
        if content.labs_repo_url:
            steps.insert(
                1, self.step("fetch-labs", fetch_labs, retry=self.network_retry(), failure_class=TOLERABLE)
            )

        return Phase(
            LAB_CONTENT,
            depends_on={PACKAGES},
            description="Lab notebooks, seed files and firewall ports",
            steps=steps,
        )

    def jupyter_readiness(self) -> ReadinessCheck:
        j = self.config.jupyter
        return ReadinessCheck(
            target=j.service_name,
            predicate=http_ok(f"http://127.0.0.1:{j.port}/api", client=self.caps.http),
            interval=self.settings.readiness_interval,
            timeout=j.readiness_timeout,
            progress_every=self.settings.progress_every,
            description="JupyterLab answering HTTP",
        )

    def services_phase(self) -> Phase:
        registrar = ServiceRegistrar(self.caps.supervisor)
        register_retry = ConstantBackoff(max_attempts=3, delay=self.settings.default_base_delay)
        steps = [
            self.step(
                f"register-{decl.name}",
                lambda decl=decl: registrar.register(decl),
                retry=register_retry,
            )
            for decl in lab_services(self.config, self.store)
        ]
        steps.append(
            self.step(
                "wait-for-jupyter",
                lambda: None,
                ready_when=self.jupyter_readiness(),
                failure_class=TOLERABLE,
            )
        )
        return Phase(
            SERVICES,
            depends_on={DATABASE_CONTAINER, PYTHON_RUNTIME},
            description="Database and JupyterLab units",
            steps=steps,
        )


def build_lab_plan(
    config: LabConfig,
    settings: OneClickSettings,
    store: MarkerStore,
    caps: LabCapabilities | None = None,
) -> list[Phase]:
    """Ordered GenAI lab phases."""
    caps = caps or LabCapabilities.default(config, settings)
    return LabPlanBuilder(config, settings, caps, store).phases()


__all__ = [
    "LabCapabilities",
    "LabPlanBuilder",
    "build_lab_plan",
    "database_service",
    "jupyter_service",
    "lab_services",
    "provisioning_service",
    "PACKAGES",
    "DATABASE_CONTAINER",
    "DATABASE_CONFIG",
    "PYTHON_RUNTIME",
    "LAB_CONTENT",
    "SERVICES",
]
