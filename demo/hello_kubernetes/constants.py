"""
Service names shared by the hello-kubernetes apps, CLI and manifests.
"""

from enum import StrEnum


class ServiceName(StrEnum):
    API = "hello-kubernetes-api"
    FRONTEND = "hello-kubernetes-frontend"


DEFAULT_PORT = 80
