"""Pod address discovery.

The pod's IPv4 address comes from the downward API (``POD_IP``, mapped from
``status.podIP`` in the Deployment). Without it, the addresses assigned to the
host's network interfaces are enumerated instead. No packets are sent.
"""

import ipaddress
import os
import socket
from typing import Iterator, Tuple

import psutil

from libs.python.logging import get_logger

logger = get_logger(__name__)


class AddressDiscoveryError(RuntimeError):
    """No usable IPv4 address is assigned to this pod."""


def is_usable_address(address: str) -> bool:
    """Return True for a routable-looking IPv4 address.

    Loopback, unspecified and link-local addresses identify nothing outside
    the pod, so they are rejected.
    """
    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return not (ip.is_loopback or ip.is_unspecified or ip.is_link_local)


def interface_addresses() -> Iterator[Tuple[str, str]]:
    """Yield ``(interface, address)`` for every usable IPv4 address on an up interface."""
    try:
        stats = psutil.net_if_stats()
        interfaces = psutil.net_if_addrs()
    except OSError as e:
        raise AddressDiscoveryError(f"could not enumerate network interfaces: {e}") from e

    for name, addresses in interfaces.items():
        if name in stats and not stats[name].isup:
            continue
        for addr in addresses:
            if addr.family == socket.AF_INET and is_usable_address(addr.address):
                yield name, addr.address


def discover_pod_address() -> str:
    """Return the IPv4 address assigned to this pod.

    Raises:
        AddressDiscoveryError: If no usable address is found
    """
    env_address = os.getenv("POD_IP", "").strip()
    if env_address:
        if is_usable_address(env_address):
            return env_address
        logger.warning("Ignoring unusable POD_IP %r", env_address)

    for name, address in interface_addresses():
        logger.debug("Using address %s of interface %s", address, name)
        return address

    raise AddressDiscoveryError("no interface has a non-loopback IPv4 address")
