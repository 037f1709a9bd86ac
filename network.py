import socket
from typing import List

from logging_config import get_logger

logger = get_logger(__name__)


def _usable(ip: str) -> bool:
    return not ip.startswith(("127.", "169.254."))


def get_local_ips() -> List[str]:
    """Return IPv4 addresses other devices on the LAN can likely reach, primary adapter first."""
    ips: List[str] = []

    # Default route trick: connect() on UDP sends nothing but picks the outbound interface
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            ip = s.getsockname()[0]
            if _usable(ip):
                ips.append(ip)
    except OSError as e:
        logger.debug(f"Could not determine primary interface address: {e}")

    try:
        for res in socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET):
            ip = res[4][0]
            if _usable(ip) and ip not in ips:
                ips.append(ip)
    except OSError as e:
        logger.debug(f"Hostname lookup failed: {e}")

    return ips


def get_network_url(port: int, scheme: str = "https") -> str:
    ips = get_local_ips()
    host = ips[0] if ips else "localhost"
    return f"{scheme}://{host}:{port}"
