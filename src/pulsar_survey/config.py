"""
Configuration for a survey run.

Two layers:
- SurveySettings: environment-backed defaults (PULSAR_SURVEY_ prefix)
- SurveyConfig: the options for one run, with command-line values merged
  over the settings

Example:
    PULSAR_SURVEY_LOCAL_PORT=19000 pulsar-survey ~/.kube/prod,prod

    config = SurveyConfig.from_settings(
        SurveySettings(),
        targets=["http://broker:8080,east"],
        topic_filter="orders",
    )
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from pulsar_survey.errors import ConfigError

KUBECONFIG_ENV = "KUBECONFIG"
"""Fallback source of targets: colon-separated kubeconfig paths."""


class SurveySettings(BaseSettings):
    """Environment defaults for pulsar-survey.

    All settings can be overridden via environment variables with the
    PULSAR_SURVEY_ prefix. For example:
        PULSAR_SURVEY_SERVICE_NAME=pulsar-proxy
        PULSAR_SURVEY_TUNNEL_READY_TIMEOUT=60
    """

    # Port-forwarding
    local_port: int = 9123
    remote_port: int = 8080
    service_name: str = "pulsar-broker"
    namespace: str = ""
    kubectl: str = "kubectl"
    tunnel_ready_timeout: float = 30.0

    # Admin REST
    request_timeout: float = 10.0

    model_config = SettingsConfigDict(env_prefix="PULSAR_SURVEY_")


def load_settings() -> SurveySettings:
    """
    Read SurveySettings from the environment.

    Raises:
        ConfigError: If an environment value does not parse, e.g.
            PULSAR_SURVEY_LOCAL_PORT=abc.
    """
    try:
        return SurveySettings()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid PULSAR_SURVEY_ settings: {problems}") from e


@dataclass
class SurveyConfig:
    """
    Options for one survey run.

    Attributes:
        targets: Raw target descriptors, in order.
        local_port: Base local port; tunnel n listens on local_port + n.
        topic_filter: Regular expression searched in topic names ("" = all).
        namespace: Default Kubernetes namespace for tunneled targets.
        service_name: Default broker service for tunneled targets.
        kubectl: Port-forwarding executable.
        remote_port: Admin port of the broker service.
        request_timeout: Per-request HTTP timeout in seconds.
        tunnel_ready_timeout: Seconds to wait for all tunnels to come up.
    """

    targets: list[str] = field(default_factory=list)
    local_port: int = 9123
    topic_filter: str = ""
    namespace: str = ""
    service_name: str = "pulsar-broker"
    kubectl: str = "kubectl"
    remote_port: int = 8080
    request_timeout: float = 10.0
    tunnel_ready_timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: SurveySettings, **overrides: Any) -> "SurveyConfig":
        """
        Build a run config from settings plus explicit overrides.

        Overrides whose value is None are ignored so optional CLI flags
        fall through to the settings.
        """
        values: dict[str, Any] = {
            "local_port": settings.local_port,
            "namespace": settings.namespace,
            "service_name": settings.service_name,
            "kubectl": settings.kubectl,
            "remote_port": settings.remote_port,
            "request_timeout": settings.request_timeout,
            "tunnel_ready_timeout": settings.tunnel_ready_timeout,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
