"""genai-oneclick — declarative, idempotent provisioning for the GenAI lab VM.

Packages:
    oneclick.core           errors, structlog logging, settings
    oneclick.execution      step executor, retry policies, audit log
    oneclick.readiness      readiness prober and predicates
    oneclick.orchestration  phase/step model and the phase sequencer
    oneclick.state          phase marker stores
    oneclick.services       service declarations, systemd, registrar
    oneclick.capabilities   dnf, podman, pyenv/venv/pip, git, firewall adapters
    oneclick.lab            GenAI lab config and plan
    oneclick.cli            ``oneclick`` command
"""

__version__ = "0.3.0"
