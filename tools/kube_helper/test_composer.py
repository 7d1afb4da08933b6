"""
Tests for the manifest composer.
"""

from pathlib import Path

import pytest
import yaml

from tools.kube_helper.composer import ManifestComposer, load_stack, parse_stack
from tools.kube_helper.types import DEFAULT_RESOURCES, AppType, PathType

REPO_ROOT = Path(__file__).resolve().parents[2]
STACK_FILE = REPO_ROOT / "demo" / "hello_kubernetes" / "stack.yaml"
MANIFEST_DIR = REPO_ROOT / "kubernetes"


def _minimal_stack(**overrides):
    data = {
        "name": "demo",
        "apps": [
            {"name": "web", "app_type": "external-api", "image": "web"},
            {"name": "backend", "app_type": "internal-api", "image": "backend"},
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture(scope="module")
def composer():
    return ManifestComposer(load_stack(STACK_FILE))


def _env(deployment):
    container = deployment["spec"]["template"]["spec"]["containers"][0]
    return container["env"]


class TestCommittedManifests:
    """kubernetes/*.yaml must be exactly what the stack renders to."""

    def test_file_set(self, composer):
        assert set(composer.documents()) == {
            "hello-kubernetes-api.yaml",
            "hello-kubernetes-frontend.yaml",
            "ingress.yaml",
        }

    @pytest.mark.parametrize(
        "filename",
        ["hello-kubernetes-api.yaml", "hello-kubernetes-frontend.yaml", "ingress.yaml"],
    )
    def test_committed_file_matches_render(self, composer, filename):
        with open(MANIFEST_DIR / filename) as f:
            committed = list(yaml.safe_load_all(f))
        assert committed == composer.documents()[filename]


class TestStackFile:
    def test_loads_both_services(self):
        stack = load_stack(STACK_FILE)
        assert [app.name for app in stack.apps] == [
            "hello-kubernetes-api",
            "hello-kubernetes-frontend",
        ]
        assert all(app.app_type == AppType.EXTERNAL_API for app in stack.apps)
        assert stack.get_app("hello-kubernetes-api").replicas == 2

    def test_ingress_routes(self):
        ingress = load_stack(STACK_FILE).ingress
        assert ingress.rewrite_target == "/$2"
        assert [(r.path, r.path_type) for r in ingress.routes] == [
            ("/api(/|$)(.*)", PathType.IMPLEMENTATION_SPECIFIC),
            ("/", PathType.PREFIX),
        ]


class TestDeployment:
    def test_env_order(self, composer):
        deployment = composer.build_deployment(composer.stack.get_app("hello-kubernetes-api"))
        assert [entry["name"] for entry in _env(deployment)] == [
            "APP_NAME",
            "APP_TYPE",
            "APP_ENV",
            "APP_PORT",
            "MESSAGE_TITLE",
            "POD_NAME",
            "POD_IP",
            "NAMESPACE",
            "NODE_NAME",
        ]

    def test_pod_ip_from_downward_api(self, composer):
        deployment = composer.build_deployment(composer.stack.get_app("hello-kubernetes-api"))
        pod_ip = next(entry for entry in _env(deployment) if entry["name"] == "POD_IP")
        assert pod_ip["valueFrom"] == {"fieldRef": {"fieldPath": "status.podIP"}}

    def test_env_values_are_strings(self, composer):
        deployment = composer.build_deployment(composer.stack.get_app("hello-kubernetes-api"))
        for entry in _env(deployment):
            if "value" in entry:
                assert isinstance(entry["value"], str)

    def test_no_probes_without_health_check(self):
        composer = ManifestComposer(parse_stack(_minimal_stack()))
        container = composer.build_deployment(composer.stack.get_app("web"))["spec"]["template"]["spec"][
            "containers"
        ][0]
        assert "readinessProbe" not in container
        assert "livenessProbe" not in container
        assert "command" not in container

    def test_default_resources(self):
        composer = ManifestComposer(parse_stack(_minimal_stack()))
        for name in ("web", "backend"):
            container = composer.build_deployment(composer.stack.get_app(name))["spec"]["template"]["spec"][
                "containers"
            ][0]
            assert container["resources"] == DEFAULT_RESOURCES.to_manifest()

    def test_declared_resources_override_defaults(self):
        data = _minimal_stack()
        data["apps"][0]["resources"] = {
            "requests_cpu": "250m",
            "requests_memory": "256Mi",
            "limits_cpu": "500m",
            "limits_memory": "512Mi",
        }
        composer = ManifestComposer(parse_stack(data))
        container = composer.build_deployment(composer.stack.get_app("web"))["spec"]["template"]["spec"][
            "containers"
        ][0]
        assert container["resources"] == {
            "requests": {"cpu": "250m", "memory": "256Mi"},
            "limits": {"cpu": "500m", "memory": "512Mi"},
        }

    def test_image_tag_defaults_to_latest(self):
        stack = parse_stack(_minimal_stack())
        assert stack.get_app("web").get_image() == "web:latest"


class TestValidation:
    def test_missing_app_type(self):
        with pytest.raises(ValueError, match="app type is required"):
            parse_stack({"name": "demo", "apps": [{"name": "web"}]})

    def test_invalid_app_type(self):
        with pytest.raises(ValueError, match="invalid app type"):
            parse_stack({"name": "demo", "apps": [{"name": "web", "app_type": "worker"}]})

    def test_no_apps(self):
        with pytest.raises(ValueError, match="no apps"):
            parse_stack({"name": "demo"})

    def test_route_to_unknown_app(self):
        data = _minimal_stack(ingress={"routes": [{"path": "/", "service": "missing"}]})
        with pytest.raises(ValueError, match="unknown app"):
            parse_stack(data)

    def test_route_to_internal_api(self):
        data = _minimal_stack(ingress={"routes": [{"path": "/", "service": "backend"}]})
        with pytest.raises(ValueError, match="internal-api"):
            ManifestComposer(parse_stack(data))

    def test_duplicate_names(self):
        data = _minimal_stack()
        data["apps"].append({"name": "web", "app_type": "external-api"})
        with pytest.raises(ValueError, match="duplicate app names: web"):
            ManifestComposer(parse_stack(data))

    def test_invalid_regex_route(self):
        data = _minimal_stack(
            ingress={"routes": [{"path": "/api(", "path_type": "ImplementationSpecific", "service": "web"}]}
        )
        with pytest.raises(ValueError, match="invalid regex"):
            ManifestComposer(parse_stack(data))

    def test_build_ingress_without_ingress(self):
        composer = ManifestComposer(parse_stack(_minimal_stack()))
        assert "ingress.yaml" not in composer.documents()
        with pytest.raises(ValueError, match="defines no ingress"):
            composer.build_ingress()


class TestWrite:
    def test_write_round_trips_through_yaml(self, composer, tmp_path):
        written = composer.write(tmp_path / "out")

        assert sorted(path.name for path in written) == sorted(composer.documents())
        for path in written:
            with open(path) as f:
                assert list(yaml.safe_load_all(f)) == composer.documents()[path.name]

    def test_internal_api_gets_a_service(self, tmp_path):
        composer = ManifestComposer(parse_stack(_minimal_stack()))
        composer.write(tmp_path)
        with open(tmp_path / "backend.yaml") as f:
            kinds = [doc["kind"] for doc in yaml.safe_load_all(f)]
        assert kinds == ["Deployment", "Service"]
