"""
App types, stack description and resource configuration for the manifests.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class AppType(str, Enum):
    """Application deployment types."""

    EXTERNAL_API = "external-api"
    INTERNAL_API = "internal-api"

    def requires_service(self) -> bool:
        """Returns True if this app type needs a Service."""
        return self in (AppType.EXTERNAL_API, AppType.INTERNAL_API)

    def allows_ingress(self) -> bool:
        """Returns True if the Ingress may route to this app type."""
        return self == AppType.EXTERNAL_API


class PathType(str, Enum):
    """networking.k8s.io/v1 Ingress path types."""

    IMPLEMENTATION_SPECIFIC = "ImplementationSpecific"
    PREFIX = "Prefix"
    EXACT = "Exact"


@dataclass
class ResourceConfig:
    """Resource requests and limits configuration."""

    requests_cpu: str
    requests_memory: str
    limits_cpu: str
    limits_memory: str

    def to_manifest(self) -> dict:
        return {
            "requests": {"cpu": self.requests_cpu, "memory": self.requests_memory},
            "limits": {"cpu": self.limits_cpu, "memory": self.limits_memory},
        }


# Applied to every app that does not declare its own resources
DEFAULT_RESOURCES = ResourceConfig(
    requests_cpu="50m",
    requests_memory="128Mi",
    limits_cpu="100m",
    limits_memory="256Mi",
)


@dataclass
class HealthCheckConfig:
    """Health check configuration, rendered as readiness and liveness probes."""

    path: str = "/health"
    initial_delay_seconds: int = 5
    period_seconds: int = 10
    timeout_seconds: int = 5
    failure_threshold: int = 3

    def to_probe(self, port_name: str) -> dict:
        return {
            "httpGet": {"path": self.path, "port": port_name},
            "initialDelaySeconds": self.initial_delay_seconds,
            "periodSeconds": self.period_seconds,
            "timeoutSeconds": self.timeout_seconds,
            "failureThreshold": self.failure_threshold,
        }


@dataclass
class AppSpec:
    """One service of the stack: a Deployment plus its Service."""

    name: str
    app_type: AppType
    image: str
    image_tag: str = "latest"
    command: Optional[List[str]] = None
    port: int = 80
    service_port: int = 80
    replicas: int = 1
    env: Dict[str, str] = field(default_factory=dict)
    health_check: Optional[HealthCheckConfig] = None
    resources: Optional[ResourceConfig] = None

    def get_image(self) -> str:
        """Returns the full image reference (image:tag)."""
        return f"{self.image}:{self.image_tag or 'latest'}"

    def get_resources(self) -> ResourceConfig:
        return self.resources or DEFAULT_RESOURCES


@dataclass
class IngressRoute:
    """A single Ingress path and the Service it is sent to."""

    path: str
    path_type: PathType
    service_name: str
    service_port: int = 80


@dataclass
class IngressSpec:
    """The stack's Ingress."""

    name: str
    routes: List[IngressRoute]
    class_name: Optional[str] = "nginx"
    rewrite_target: Optional[str] = None


@dataclass
class StackSpec:
    """Everything needed to render the manifests of the tutorial stack."""

    name: str
    apps: List[AppSpec]
    ingress: Optional[IngressSpec] = None
    namespace: str = "default"
    environment: str = "dev"

    def get_app(self, name: str) -> AppSpec:
        for app in self.apps:
            if app.name == name:
                return app
        raise ValueError(f"unknown app: {name}")


def resolve_app_type(app_name: str, app_type_str: str) -> AppType:
    """Validates and returns the app type.

    Raises:
        ValueError: If app_type_str is empty or invalid
    """
    if not app_type_str:
        raise ValueError(
            f"app type is required for {app_name} (must be one of: external-api, internal-api)"
        )

    try:
        return AppType(app_type_str)
    except ValueError:
        raise ValueError(
            f"invalid app type for {app_name}: {app_type_str} "
            f"(must be one of: external-api, internal-api)"
        )


def resolve_path_type(path: str, path_type_str: str) -> PathType:
    """Validates and returns an Ingress path type.

    Raises:
        ValueError: If path_type_str is not a networking.k8s.io/v1 path type
    """
    try:
        return PathType(path_type_str)
    except ValueError:
        raise ValueError(
            f"invalid pathType for {path}: {path_type_str} "
            f"(must be one of: ImplementationSpecific, Prefix, Exact)"
        )
