"""
Ingress routing model.

Reproduces how ingress-nginx dispatches a request path for a single Ingress,
so the rules in kubernetes/ingress.yaml can be tested and emulated locally:

- ImplementationSpecific paths are case-insensitive regexes anchored at the
  start of the path, tried first in declaration order
- Exact paths are compared literally
- Prefix paths match whole path segments, longest prefix first

With a rewrite-target annotation, a regex path that captures groups forwards
the target with ``$1``..``$9`` substituted; every other path is forwarded
unmodified.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from tools.kube_helper.types import IngressRoute, IngressSpec, PathType, resolve_path_type

REWRITE_TARGET_ANNOTATION = "nginx.ingress.kubernetes.io/rewrite-target"

_GROUP_REFERENCE = re.compile(r"\$(\d)")


@dataclass(frozen=True)
class RoutedRequest:
    """Where the ingress controller sends a request, and with which path."""

    service_name: str
    service_port: int
    path: str


def _prefix_matches(prefix: str, path: str) -> bool:
    prefix = prefix.rstrip("/")
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


class IngressRouter:
    """Routes request paths the way the ingress controller would."""

    def __init__(self, routes: List[IngressRoute], rewrite_target: Optional[str] = None):
        self.routes = list(routes)
        self.rewrite_target = rewrite_target

        self._regex_routes = []
        for route in self.routes:
            if route.path_type == PathType.IMPLEMENTATION_SPECIFIC:
                try:
                    pattern = re.compile(route.path, re.IGNORECASE)
                except re.error as e:
                    raise ValueError(f"invalid regex path {route.path!r}: {e}") from e
                self._regex_routes.append((route, pattern))

        self._exact_routes = [r for r in self.routes if r.path_type == PathType.EXACT]
        self._prefix_routes = sorted(
            (r for r in self.routes if r.path_type == PathType.PREFIX),
            key=lambda r: len(r.path.rstrip("/")),
            reverse=True,
        )

    @classmethod
    def from_spec(cls, spec: IngressSpec) -> "IngressRouter":
        return cls(spec.routes, rewrite_target=spec.rewrite_target)

    @classmethod
    def from_manifest(cls, doc: dict) -> "IngressRouter":
        """Build a router from a parsed networking.k8s.io/v1 Ingress document.

        Hosts are ignored; every rule is treated as matching any host.

        Raises:
            ValueError: If the document is not an Ingress or a path is malformed
        """
        if not isinstance(doc, dict) or doc.get("kind") != "Ingress":
            kind = doc.get("kind") if isinstance(doc, dict) else type(doc).__name__
            raise ValueError(f"expected an Ingress document, got {kind}")
        if not str(doc.get("apiVersion", "")).startswith("networking.k8s.io/"):
            raise ValueError(f"unsupported Ingress apiVersion: {doc.get('apiVersion')}")

        annotations = (doc.get("metadata") or {}).get("annotations") or {}
        routes = []
        for rule in (doc.get("spec") or {}).get("rules") or []:
            for entry in (rule.get("http") or {}).get("paths") or []:
                path = entry.get("path", "/")
                service = (entry.get("backend") or {}).get("service") or {}
                port = (service.get("port") or {}).get("number")
                if not service.get("name") or port is None:
                    raise ValueError(f"path {path!r} needs a backend service name and port number")
                routes.append(
                    IngressRoute(
                        path=path,
                        path_type=resolve_path_type(path, entry.get("pathType", "")),
                        service_name=service["name"],
                        service_port=int(port),
                    )
                )

        return cls(routes, rewrite_target=annotations.get(REWRITE_TARGET_ANNOTATION))

    def _rewrite(self, match: "re.Match[str]") -> str:
        def substitute(ref: "re.Match[str]") -> str:
            index = int(ref.group(1))
            if index > match.re.groups:
                return ""
            return match.group(index) or ""

        return _GROUP_REFERENCE.sub(substitute, self.rewrite_target)

    def route(self, path: str) -> Optional[RoutedRequest]:
        """Route a request path (optionally with a query string).

        Returns:
            The backend and forwarded path, or None when no rule matches and
            the controller's default backend would answer 404
        """
        path, separator, query = path.partition("?")
        path = path or "/"
        suffix = separator + query

        for route, pattern in self._regex_routes:
            match = pattern.match(path)
            if match:
                forwarded = path
                if self.rewrite_target and pattern.groups:
                    forwarded = self._rewrite(match)
                return RoutedRequest(route.service_name, route.service_port, forwarded + suffix)

        for route in self._exact_routes:
            if path == route.path:
                return RoutedRequest(route.service_name, route.service_port, path + suffix)

        for route in self._prefix_routes:
            if _prefix_matches(route.path, path):
                return RoutedRequest(route.service_name, route.service_port, path + suffix)

        return None
