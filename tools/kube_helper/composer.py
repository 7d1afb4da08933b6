"""
Manifest composer - renders Deployments, Services and the Ingress for a stack.
"""

from pathlib import Path
from typing import Dict, List, Union

import yaml

from tools.kube_helper.ingress import REWRITE_TARGET_ANNOTATION, IngressRouter
from tools.kube_helper.types import (
    AppSpec,
    HealthCheckConfig,
    IngressRoute,
    IngressSpec,
    ResourceConfig,
    StackSpec,
    resolve_app_type,
    resolve_path_type,
)

PORT_NAME = "http"

# Downward API fields exposed to every container
DOWNWARD_API_ENV = [
    ("POD_NAME", "metadata.name"),
    ("POD_IP", "status.podIP"),
    ("NAMESPACE", "metadata.namespace"),
    ("NODE_NAME", "spec.nodeName"),
]


def _parse_app(data: dict) -> AppSpec:
    name = data.get("name", "")
    if not name:
        raise ValueError("every app needs a name")

    health_check = None
    if data.get("health_check"):
        health_check = HealthCheckConfig(**data["health_check"])

    resources = None
    if data.get("resources"):
        resources = ResourceConfig(**data["resources"])

    return AppSpec(
        name=name,
        app_type=resolve_app_type(name, data.get("app_type", "")),
        image=data.get("image") or name,
        image_tag=str(data.get("image_tag", "latest")),
        command=data.get("command"),
        port=int(data.get("port", 80)),
        service_port=int(data.get("service_port", 80)),
        replicas=int(data.get("replicas", 1)),
        env={k: str(v) for k, v in (data.get("env") or {}).items()},
        health_check=health_check,
        resources=resources,
    )


def parse_stack(data: dict) -> StackSpec:
    """Build a StackSpec from a parsed stack file.

    Raises:
        ValueError: If an app or ingress route is invalid
    """
    apps = [_parse_app(entry) for entry in data.get("apps") or []]
    if not apps:
        raise ValueError("stack defines no apps")
    ports = {app.name: app.service_port for app in apps}

    ingress = None
    ingress_data = data.get("ingress")
    if ingress_data:
        routes = []
        for entry in ingress_data.get("routes") or []:
            path = entry.get("path", "/")
            service = entry.get("service", "")
            if service not in ports:
                raise ValueError(f"ingress path {path!r} routes to unknown app {service!r}")
            routes.append(
                IngressRoute(
                    path=path,
                    path_type=resolve_path_type(path, entry.get("path_type", "Prefix")),
                    service_name=service,
                    service_port=int(entry.get("port", ports[service])),
                )
            )
        ingress = IngressSpec(
            name=ingress_data.get("name") or data.get("name", "ingress"),
            routes=routes,
            class_name=ingress_data.get("class_name", "nginx"),
            rewrite_target=ingress_data.get("rewrite_target"),
        )

    return StackSpec(
        name=data.get("name", "stack"),
        apps=apps,
        ingress=ingress,
        namespace=data.get("namespace", "default"),
        environment=data.get("environment", "dev"),
    )


def load_stack(path: Union[str, Path]) -> StackSpec:
    """Load a stack description from a YAML file."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return parse_stack(data)


class ManifestComposer:
    """Composes Kubernetes manifests from a stack description."""

    def __init__(self, stack: StackSpec):
        self.stack = stack
        self._validate()

    def _validate(self) -> None:
        names = [app.name for app in self.stack.apps]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise ValueError(f"duplicate app names: {', '.join(sorted(duplicates))}")

        if self.stack.ingress:
            for route in self.stack.ingress.routes:
                app = self.stack.get_app(route.service_name)
                if not app.app_type.allows_ingress():
                    raise ValueError(
                        f"ingress path {route.path!r} routes to {app.name}, "
                        f"which is an {app.app_type.value}"
                    )
            # Compiles the regex paths
            IngressRouter.from_spec(self.stack.ingress)

    def _labels(self, app: AppSpec) -> Dict[str, str]:
        return {"app": app.name, "app.kubernetes.io/part-of": self.stack.name}

    def _container_env(self, app: AppSpec) -> List[dict]:
        env = [
            {"name": "APP_NAME", "value": app.name},
            {"name": "APP_TYPE", "value": app.app_type.value},
            {"name": "APP_ENV", "value": self.stack.environment},
            {"name": "APP_PORT", "value": str(app.port)},
        ]
        for key in sorted(app.env):
            env.append({"name": key, "value": app.env[key]})
        for name, field_path in DOWNWARD_API_ENV:
            env.append({"name": name, "valueFrom": {"fieldRef": {"fieldPath": field_path}}})
        return env

    def build_deployment(self, app: AppSpec) -> dict:
        container = {"name": app.name, "image": app.get_image()}
        if app.command:
            container["command"] = list(app.command)
        container["ports"] = [{"name": PORT_NAME, "containerPort": app.port}]
        container["env"] = self._container_env(app)
        container["resources"] = app.get_resources().to_manifest()
        if app.health_check:
            container["readinessProbe"] = app.health_check.to_probe(PORT_NAME)
            container["livenessProbe"] = app.health_check.to_probe(PORT_NAME)

        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {
                "name": app.name,
                "namespace": self.stack.namespace,
                "labels": self._labels(app),
            },
            "spec": {
                "replicas": app.replicas,
                "selector": {"matchLabels": {"app": app.name}},
                "template": {
                    "metadata": {"labels": self._labels(app)},
                    "spec": {"containers": [container]},
                },
            },
        }

    def build_service(self, app: AppSpec) -> dict:
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {
                "name": app.name,
                "namespace": self.stack.namespace,
                "labels": self._labels(app),
            },
            "spec": {
                "type": "ClusterIP",
                "selector": {"app": app.name},
                "ports": [
                    {
                        "name": PORT_NAME,
                        "port": app.service_port,
                        "targetPort": PORT_NAME,
                        "protocol": "TCP",
                    }
                ],
            },
        }

    def build_ingress(self) -> dict:
        ingress = self.stack.ingress
        if ingress is None:
            raise ValueError(f"stack {self.stack.name} defines no ingress")

        metadata = {
            "name": ingress.name,
            "namespace": self.stack.namespace,
            "labels": {"app.kubernetes.io/part-of": self.stack.name},
        }
        if ingress.rewrite_target:
            metadata["annotations"] = {REWRITE_TARGET_ANNOTATION: ingress.rewrite_target}

        spec = {}
        if ingress.class_name:
            spec["ingressClassName"] = ingress.class_name
        spec["rules"] = [
            {
                "http": {
                    "paths": [
                        {
                            "path": route.path,
                            "pathType": route.path_type.value,
                            "backend": {
                                "service": {
                                    "name": route.service_name,
                                    "port": {"number": route.service_port},
                                }
                            },
                        }
                        for route in ingress.routes
                    ]
                }
            }
        ]

        return {
            "apiVersion": "networking.k8s.io/v1",
            "kind": "Ingress",
            "metadata": metadata,
            "spec": spec,
        }

    def documents(self) -> Dict[str, List[dict]]:
        """Returns the manifests to write, keyed by file name."""
        files = {}
        for app in self.stack.apps:
            docs = [self.build_deployment(app)]
            if app.app_type.requires_service():
                docs.append(self.build_service(app))
            files[f"{app.name}.yaml"] = docs
        if self.stack.ingress:
            files["ingress.yaml"] = [self.build_ingress()]
        return files

    def write(self, output_dir: Union[str, Path]) -> List[Path]:
        """Write every manifest file into output_dir and return their paths."""
        output = Path(output_dir)
        output.mkdir(parents=True, exist_ok=True)

        written = []
        for filename, docs in self.documents().items():
            path = output / filename
            with open(path, "w") as f:
                yaml.safe_dump_all(docs, f, default_flow_style=False, sort_keys=False)
            written.append(path)
        return written
