"""
Local ingress gateway.

Emulates the ingress controller on a workstation: each request is routed with
IngressRouter and forwarded to the upstream URL configured for the target
Service, e.g. a ``kubectl port-forward`` or a service started with ``--dev``.
"""

from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

import httpx
from fastapi import FastAPI, HTTPException, Request, Response

from libs.python.logging import get_logger
from tools.kube_helper.ingress import IngressRouter

logger = get_logger(__name__)

# Hop-by-hop headers (RFC 9110 section 7.6.1), plus framing headers httpx recomputes
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
    "content-encoding",
}

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _end_to_end(items) -> List[Tuple[str, str]]:
    # Repeated headers such as Set-Cookie stay separate pairs
    return [(k, v) for k, v in items if k.lower() not in HOP_BY_HOP_HEADERS]


def parse_upstreams(values) -> Dict[str, str]:
    """Parse ``service=url`` pairs into a mapping.

    Raises:
        ValueError: If a value is not of the form service=url
    """
    upstreams = {}
    for value in values:
        name, sep, url = value.partition("=")
        if not sep or not name.strip() or not url.strip():
            raise ValueError(f"upstream must look like service=url, got {value!r}")
        upstreams[name.strip()] = url.strip().rstrip("/")
    return upstreams


def create_gateway_app(
    router: IngressRouter,
    upstreams: Dict[str, str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = 10.0,
) -> FastAPI:
    """Create the gateway app.

    Args:
        router: Routing rules, usually loaded from kubernetes/ingress.yaml
        upstreams: Base URL per Service name
        transport: httpx transport override (tests use httpx.MockTransport)
        timeout: Upstream request timeout in seconds
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.client = httpx.AsyncClient(transport=transport, timeout=timeout)
        try:
            yield
        finally:
            await app.state.client.aclose()

    app = FastAPI(
        title="Local Ingress Gateway",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy(request: Request, path: str) -> Response:
        raw_path = request.url.path
        if request.url.query:
            raw_path = f"{raw_path}?{request.url.query}"

        target = router.route(raw_path)
        if target is None:
            raise HTTPException(status_code=404, detail="no ingress rule matches")

        base_url = upstreams.get(target.service_name)
        if base_url is None:
            logger.warning("No upstream configured for service %s", target.service_name)
            raise HTTPException(
                status_code=502, detail=f"no upstream for service {target.service_name}"
            )

        url = f"{base_url}{target.path}"
        logger.debug("Forwarding %s %s to %s", request.method, raw_path, url)

        try:
            upstream = await request.app.state.client.request(
                request.method,
                url,
                headers=_end_to_end(request.headers.items()),
                content=await request.body(),
            )
        except httpx.HTTPError as e:
            logger.warning("Upstream %s failed: %s", target.service_name, e)
            raise HTTPException(
                status_code=502, detail=f"upstream {target.service_name} unavailable"
            )

        response = Response(content=upstream.content, status_code=upstream.status_code)
        for name, value in _end_to_end(upstream.headers.multi_items()):
            response.headers.append(name, value)
        return response

    return app
