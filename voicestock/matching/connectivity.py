"""Cheap reachability probe used before calling cloud matchers."""

import socket
from typing import Iterable, Tuple

from loguru import logger

DEFAULT_PROBE_HOSTS: Tuple[Tuple[str, int], ...] = (
    ("api-inference.modelscope.cn", 443),
    ("api.groq.com", 443),
    ("1.1.1.1", 53),
)


def has_network(hosts: Iterable[Tuple[str, int]] = DEFAULT_PROBE_HOSTS, timeout: float = 1.5) -> bool:
    """True as soon as one TCP connection succeeds."""
    for host, port in hosts:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError as exc:
            logger.debug("Probe {}:{} failed: {}", host, port, exc)
    return False
