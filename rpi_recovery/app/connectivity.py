"""Internet reachability checks used by the final status report."""
import socket
import subprocess
from typing import Optional


def check_internet_connection(host: str = "8.8.8.8", port: int = 53, timeout: float = 3) -> bool:
    """
    Check if internet connection is available by attempting to connect to a DNS server.

    Args:
        host: DNS server to check (default: Google DNS)
        port: Port to connect to (default: 53 for DNS)
        timeout: Connection timeout in seconds

    Returns:
        True if connection successful, False otherwise
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def check_internet_ping(host: str = "1.1.1.1", interface: Optional[str] = None,
                        count: int = 1, timeout: int = 2) -> bool:
    """
    Check internet connection using ping, optionally bound to one interface.

    Args:
        host: Host to ping (default: Cloudflare DNS)
        interface: Interface to send from (e.g. wlan0), or None for the default route
        count: Number of ping packets
        timeout: Timeout in seconds

    Returns:
        True if ping successful, False otherwise
    """
    cmd = ["ping", "-c", str(count), "-W", str(timeout)]
    if interface:
        cmd += ["-I", interface]
    cmd.append(host)
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout * count + 1)
        return result.returncode == 0
    except (FileNotFoundError, subprocess.TimeoutExpired, subprocess.SubprocessError):
        return False
