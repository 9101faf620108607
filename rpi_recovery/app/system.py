"""Wrappers around the OS tools used during recovery.

Every external command goes through ``CommandRunner``, which never raises for
a failing or missing tool unless asked to. Parsing of ``iwconfig``, ``ip`` and
``iwlist`` output lives in small module-level helpers so it can be tested
without a wireless card.
"""
import os
import re
import subprocess
from typing import Optional

from .config import SystemConfig
from .logger import RecoveryLogger

ESSID_RE = re.compile(r'ESSID:"([^"]*)"')
INET_RE = re.compile(r"^\s*inet\s+(\d{1,3}(?:\.\d{1,3}){3})(?:/\d+)?", re.MULTILINE)

# Return codes used when the command never produced one
RC_NOT_FOUND = 127
RC_TIMEOUT = 124
RC_CANNOT_RUN = 126


class CommandError(RuntimeError):
    """Raised by ``CommandRunner.run(check=True)`` on a non-zero exit."""

    def __init__(self, command: list[str], returncode: int, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command failed ({returncode}): {' '.join(command)}\n{output}".rstrip())


def parse_essid(iwconfig_output: str) -> Optional[str]:
    """Return the associated SSID from ``iwconfig`` output.

    ``ESSID:off/any`` (not associated) and an empty quoted ESSID give None.
    """
    match = ESSID_RE.search(iwconfig_output or "")
    if match and match.group(1):
        return match.group(1)
    return None


def parse_inet_address(ip_addr_output: str) -> Optional[str]:
    """Return the first IPv4 address from ``ip addr show`` output."""
    match = INET_RE.search(ip_addr_output or "")
    return match.group(1) if match else None


def parse_scan_ssids(scan_output: str) -> list[str]:
    """Return sorted, de-duplicated, non-empty SSIDs from ``iwlist scan`` output."""
    return sorted({ssid for ssid in ESSID_RE.findall(scan_output or "") if ssid})


class CommandRunner:
    """Runs system commands, optionally behind ``sudo``."""

    def __init__(self, config: Optional[SystemConfig] = None,
                 logger: Optional[RecoveryLogger] = None):
        """Initialize command runner.

        Args:
            config: Execution settings (sudo usage, timeout).
            logger: Optional action log that receives every invocation.
        """
        self.config = config or SystemConfig()
        self.logger = logger
        self.is_root = hasattr(os, "geteuid") and os.geteuid() == 0

    def elevation_prefix(self) -> list[str]:
        """Return the privilege-escalation prefix for elevated commands."""
        if self.config.use_sudo and not self.is_root:
            return ["sudo"]
        return []

    def run(self, cmd: list[str], elevate: bool = False, check: bool = False,
            input: Optional[str] = None) -> subprocess.CompletedProcess:
        """Execute a command and return the CompletedProcess result.

        Args:
            cmd: Command and arguments to execute.
            elevate: Prefix the command with ``sudo`` when needed.
            check: Raise ``CommandError`` on a non-zero exit status.
            input: Text written to the command's stdin. Secrets go here rather
                than in ``cmd`` so they stay out of the process list and the log.

        Returns:
            A subprocess.CompletedProcess. A missing executable yields return
            code 127, a timeout yields 124 and an argument list the OS refuses
            (e.g. an embedded NUL byte) yields 126.

        Raises:
            CommandError: If ``check`` is set and the command failed.
        """
        full_cmd = (self.elevation_prefix() if elevate else []) + list(cmd)
        try:
            result = subprocess.run(
                full_cmd,
                input=input,
                capture_output=True,
                text=True,
                timeout=self.config.command_timeout,
            )
        except FileNotFoundError:
            result = subprocess.CompletedProcess(full_cmd, RC_NOT_FOUND, "", f"{full_cmd[0]}: command not found")
        except subprocess.TimeoutExpired:
            result = subprocess.CompletedProcess(
                full_cmd, RC_TIMEOUT, "", f"timed out after {self.config.command_timeout}s"
            )
        except (OSError, ValueError) as e:
            result = subprocess.CompletedProcess(full_cmd, RC_CANNOT_RUN, "", f"{full_cmd[0]}: {e}")

        if self.logger is not None:
            self.logger.log_command(full_cmd, result.returncode, result.stderr or "")

        if check and result.returncode != 0:
            raise CommandError(full_cmd, result.returncode,
                               (result.stdout or "") + (result.stderr or ""))
        return result

    def output(self, cmd: list[str], elevate: bool = False) -> str:
        """Run a command and return its stripped stdout (empty on failure)."""
        result = self.run(cmd, elevate=elevate)
        if result.returncode != 0:
            return ""
        return (result.stdout or "").strip()


class ServiceManager:
    """systemctl operations."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def enable(self, service: str) -> bool:
        return self.runner.run(["systemctl", "enable", service], elevate=True).returncode == 0

    def start(self, service: str) -> bool:
        return self.runner.run(["systemctl", "start", service], elevate=True).returncode == 0

    def restart(self, service: str) -> bool:
        return self.runner.run(["systemctl", "restart", service], elevate=True).returncode == 0

    def is_active(self, service: str) -> bool:
        result = self.runner.run(["systemctl", "is-active", "--quiet", service], elevate=True)
        return result.returncode == 0


class RaspiConfig:
    """Non-interactive raspi-config calls."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def enable_vnc(self) -> bool:
        # 0 => enable, 1 => disable
        result = self.runner.run(["raspi-config", "nonint", "do_vnc", "0"], elevate=True)
        return result.returncode == 0


class WirelessInterface:
    """State queries and control for one wireless interface."""

    def __init__(self, runner: CommandRunner, name: str = "wlan0"):
        self.runner = runner
        self.name = name

    def exists(self) -> bool:
        return self.runner.run(["ip", "link", "show", self.name]).returncode == 0

    def is_up(self) -> bool:
        result = self.runner.run(["ip", "link", "show", self.name])
        return result.returncode == 0 and "state UP" in (result.stdout or "")

    def bring_up(self) -> bool:
        return self.runner.run(["ip", "link", "set", self.name, "up"], elevate=True).returncode == 0

    def current_ssid(self) -> Optional[str]:
        """Return the SSID the interface is associated with, or None."""
        return parse_essid(self.runner.output(["iwconfig", self.name]))

    def is_associated_with(self, ssid: str) -> bool:
        return f'ESSID:"{ssid}"' in self.runner.output(["iwconfig", self.name])

    def ip_address(self) -> Optional[str]:
        """Return the IPv4 address bound to the interface, or None."""
        return parse_inet_address(self.runner.output(["ip", "addr", "show", self.name]))

    def scan_ssids(self) -> list[str]:
        """Scan for networks and return their SSIDs, sorted and unique."""
        return parse_scan_ssids(self.runner.output(["iwlist", self.name, "scan"], elevate=True))
