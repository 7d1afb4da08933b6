"""
Command line interface for rendering and exercising the stack manifests.
"""

from pathlib import Path
from typing import List

import typer
import uvicorn
import yaml
from typing_extensions import Annotated

from libs.python.cli.types import Host, LogLevel, Port
from libs.python.logging import configure_logging
from tools.kube_helper.composer import ManifestComposer, load_stack
from tools.kube_helper.gateway import create_gateway_app, parse_upstreams
from tools.kube_helper.ingress import IngressRouter

app = typer.Typer(help="Render and exercise the hello-kubernetes manifests")

DEFAULT_STACK = Path("demo/hello_kubernetes/stack.yaml")
DEFAULT_INGRESS = Path("kubernetes/ingress.yaml")


def load_router(ingress_file: Path) -> IngressRouter:
    """Build a router from the first Ingress document in a manifest file."""
    with open(ingress_file, "r") as f:
        for doc in yaml.safe_load_all(f):
            if isinstance(doc, dict) and doc.get("kind") == "Ingress":
                return IngressRouter.from_manifest(doc)
    raise ValueError(f"no Ingress document in {ingress_file}")


@app.command()
def render(
    stack: Annotated[Path, typer.Option(help="Stack description file")] = DEFAULT_STACK,
    output: Annotated[Path, typer.Option(help="Directory for the rendered manifests")] = Path("kubernetes"),
    namespace: Annotated[str, typer.Option(help="Override the stack namespace")] = "",
    environment: Annotated[str, typer.Option(help="Override the stack environment")] = "",
    image_tag: Annotated[str, typer.Option(help="Override every app's image tag")] = "",
):
    """Render Deployments, Services and the Ingress for a stack."""
    try:
        spec = load_stack(stack)
    except (OSError, ValueError) as e:
        typer.echo(f"Error loading {stack}: {e}", err=True)
        raise typer.Exit(code=1)

    if namespace:
        spec.namespace = namespace
    if environment:
        spec.environment = environment
    if image_tag:
        for app_spec in spec.apps:
            app_spec.image_tag = image_tag

    try:
        written = ManifestComposer(spec).write(output)
    except ValueError as e:
        typer.echo(f"Error rendering {stack}: {e}", err=True)
        raise typer.Exit(code=1)

    for path in written:
        typer.echo(f"Wrote {path}")


@app.command()
def route(
    path: Annotated[str, typer.Argument(help="Request path, e.g. /api/message")],
    ingress: Annotated[Path, typer.Option(help="Ingress manifest file")] = DEFAULT_INGRESS,
):
    """Show where the ingress sends a request path."""
    target = load_router(ingress).route(path)
    if target is None:
        typer.echo(f"{path} -> no matching rule (404)")
        raise typer.Exit(code=1)
    typer.echo(f"{path} -> {target.service_name}:{target.service_port}{target.path}")


@app.command()
def gateway(
    upstream: Annotated[
        List[str], typer.Option(help="service=url, repeatable, e.g. hello-kubernetes-api=http://localhost:8081")
    ],
    ingress: Annotated[Path, typer.Option(help="Ingress manifest file")] = DEFAULT_INGRESS,
    host: Host = "127.0.0.1",
    port: Port = 8080,
    log_level: LogLevel = "INFO",
):
    """Run a local gateway that applies the ingress rules."""
    configure_logging(service_name="local-ingress-gateway", log_level=log_level)

    try:
        upstreams = parse_upstreams(upstream)
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)

    uvicorn.run(
        create_gateway_app(load_router(ingress), upstreams),
        host=host,
        port=port,
        log_config=None,
    )


def main():
    app()


if __name__ == "__main__":
    main()
