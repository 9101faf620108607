"""Emergency recovery phases: immediate fixes, diagnosis, WiFi setup, final status.

Each phase is best-effort. Failing commands are reported with a ✓/✗/⚠ line
and recorded in the action log, never raised to the operator.
"""
import getpass
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .config import Config
from .connectivity import check_internet_connection, check_internet_ping
from .logger import RecoveryLogger
from .system import CommandError, CommandRunner, RaspiConfig, ServiceManager, WirelessInterface
from .wpa_config import WpaSupplicantConfig, generate_network_block

OK = "ok"
FAIL = "fail"
WARN = "warn"

SYMBOLS = {OK: "✓", FAIL: "✗", WARN: "⚠"}

# Setup outcomes
CONNECTED = "connected"
ABORTED = "aborted"
FAILED = "failed"
TIMEOUT = "timeout"

BANNER = "=" * 41


@dataclass
class CheckResult:
    """One diagnosis line."""
    name: str
    status: str
    message: str
    detail: Optional[str] = None


@dataclass
class SetupResult:
    """Outcome of an interactive WiFi setup."""
    outcome: str
    ssid: Optional[str] = None
    ip_address: Optional[str] = None


@dataclass
class RecoveryStatus:
    """Summary printed at the end of a run."""
    vnc_running: bool
    ssh_running: bool
    ip_address: Optional[str] = None
    ssid: Optional[str] = None
    internet: Optional[bool] = None

    @property
    def wifi_connected(self) -> bool:
        return bool(self.ip_address)


def _default_internet_check(interface: str) -> bool:
    return check_internet_connection(timeout=3) or check_internet_ping(interface=interface)


class EmergencyRecovery:
    """Restores SSH, VNC and WiFi on a Raspberry Pi."""

    def __init__(
        self,
        config: Config,
        runner: CommandRunner,
        logger: Optional[RecoveryLogger] = None,
        input_func: Callable[[str], str] = input,
        password_func: Callable[[str], str] = getpass.getpass,
        sleep: Callable[[float], None] = time.sleep,
        internet_check: Optional[Callable[[str], bool]] = None,
    ):
        """Initialize the recovery tool.

        Args:
            config: Loaded configuration.
            runner: Command runner used for every system call.
            logger: Optional action log.
            input_func: Prompt for visible input (SSID, yes/no).
            password_func: Prompt for masked input (WiFi password).
            sleep: Sleep function used while polling for a connection.
            internet_check: Called with the interface name to check reachability.
        """
        self.config = config
        self.runner = runner
        self.logger = logger
        self.input_func = input_func
        self.password_func = password_func
        self.sleep = sleep
        self.internet_check = internet_check or _default_internet_check

        self.services = ServiceManager(runner)
        self.raspi_config = RaspiConfig(runner)
        self.interface = WirelessInterface(runner, config.network.interface)
        self.wpa = WpaSupplicantConfig(
            config.network.wpa_config_path,
            country=config.network.country,
            backup_suffix=config.network.backup_suffix,
            logger=logger,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _report(self, name: str, status: str, message: str, detail: Optional[str] = None) -> CheckResult:
        print(f"{SYMBOLS[status]} {message}")
        if self.logger:
            self.logger.log_check(name, status, message)
        return CheckResult(name=name, status=status, message=message, detail=detail)

    def _prompt(self, func: Callable[[str], str], text: str) -> str:
        try:
            return func(text)
        except EOFError:
            print()
            return ""

    def _log_error(self, message: str, context: Optional[dict] = None) -> None:
        if self.logger:
            self.logger.log_error(message, context)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def immediate_fixes(self) -> None:
        """Enable SSH and VNC, bring WiFi up and restart network services."""
        print("Applying immediate fixes...")
        svc = self.config.services

        # SSH should already be working if you're running this
        self.services.enable(svc.ssh_service)
        self.services.start(svc.ssh_service)

        self.services.enable(svc.vnc_service)
        self.services.start(svc.vnc_service)
        self.raspi_config.enable_vnc()

        self.interface.bring_up()

        for service in svc.network_services:
            self.services.restart(service)

        print("✓ Immediate fixes applied")

    def create_basic_wifi_config(self) -> bool:
        """Write the minimal wpa_supplicant configuration."""
        try:
            self.wpa.create_basic()
        except OSError as e:
            print(f"✗ Could not create WiFi configuration: {e}")
            self._log_error(f"Could not create WiFi configuration: {e}", {"path": str(self.wpa.path)})
            return False
        print("✓ Basic WiFi configuration created")
        return True

    def diagnose(self) -> list[CheckResult]:
        """Check services, interface and configuration, fixing what is cheap to fix."""
        print()
        print("Diagnosing potential issues...")
        print("=" * 30)
        results = []
        vnc = self.config.services.vnc_service
        iface = self.interface

        if self.services.is_active(vnc):
            results.append(self._report("vnc", OK, "VNC service is running"))
        else:
            results.append(self._report("vnc", FAIL, "VNC service is NOT running"))
            print("  Attempting to start VNC...")
            self.services.start(vnc)

        if iface.exists():
            results.append(self._report("interface", OK, "WiFi interface exists"))
            if iface.is_up():
                results.append(self._report("interface_state", OK, "WiFi interface is UP"))
            else:
                results.append(self._report("interface_state", FAIL, "WiFi interface is DOWN"))
                print("  Bringing WiFi interface up...")
                iface.bring_up()
        else:
            results.append(self._report("interface", FAIL, "WiFi interface not found"))

        if self.wpa.exists():
            count = self.wpa.count_networks()
            results.append(self._report("wifi_config", OK, "WiFi configuration file exists", detail=str(count)))
            print(f"  Configured networks: {count}")
            if count == 0:
                results.append(self._report("wifi_networks", WARN, "No WiFi networks configured"))
        else:
            results.append(self._report("wifi_config", FAIL, "WiFi configuration file missing"))
            print("  Creating basic configuration...")
            self.create_basic_wifi_config()

        ssid = iface.current_ssid()
        if ssid:
            results.append(self._report("association", OK, f"Connected to WiFi: {ssid}", detail=ssid))
        else:
            results.append(self._report("association", FAIL, "Not connected to any WiFi network"))

        ip_address = iface.ip_address()
        if ip_address:
            results.append(self._report("ip_address", OK, f"WiFi IP address: {ip_address}", detail=ip_address))
        else:
            results.append(self._report("ip_address", FAIL, "No IP address on WiFi interface"))

        return results

    def setup_wifi_interactive(self) -> SetupResult:
        """Prompt for credentials, add the network and wait for it to connect."""
        print()
        print("WiFi Network Setup")
        print("=" * 18)

        print("Scanning for available networks...")
        available = self.interface.scan_ssids()
        if available:
            print("Available networks:")
            for index, name in enumerate(available, start=1):
                print(f"{index:2d}) {name}")
            print()

        ssid = self._prompt(self.input_func, "Enter your WiFi network name (SSID): ").strip()
        if not ssid:
            print("SSID cannot be empty")
            return SetupResult(ABORTED)

        password = self._prompt(self.password_func, "Enter WiFi password: ")
        if not password:
            print("Password cannot be empty")
            return SetupResult(ABORTED, ssid=ssid)

        print("Adding WiFi network...")
        try:
            block = generate_network_block(self.runner, ssid, password)
        except CommandError as e:
            print(f"✗ Could not generate network configuration: {e.output.strip() or e}")
            self._log_error("wpa_passphrase failed", {"ssid": ssid, "returncode": e.returncode})
            if self.logger:
                self.logger.log_wifi_setup(ssid, FAILED)
            return SetupResult(FAILED, ssid=ssid)

        try:
            self.wpa.add_network(block)
        except OSError as e:
            print(f"✗ Could not update WiFi configuration: {e}")
            self._log_error(f"Could not update WiFi configuration: {e}", {"path": str(self.wpa.path)})
            if self.logger:
                self.logger.log_wifi_setup(ssid, FAILED)
            return SetupResult(FAILED, ssid=ssid)

        print("Restarting WiFi services...")
        for service in self.config.services.wifi_services:
            self.services.restart(service)

        return self.wait_for_connection(ssid)

    def wait_for_connection(self, ssid: str) -> SetupResult:
        """Poll for association with ``ssid`` and report the address obtained."""
        conn = self.config.connection
        max_wait = int(conn.poll_attempts * conn.poll_interval)
        print(f"Attempting to connect (this may take up to {max_wait} seconds)...")

        announced = False
        for _ in range(conn.poll_attempts):
            if self.interface.is_associated_with(ssid):
                if not announced:
                    print(f"✓ Successfully connected to {ssid}!")
                    announced = True

                self.sleep(conn.dhcp_wait)
                ip_address = self.interface.ip_address()
                if ip_address:
                    print(f"✓ IP address obtained: {ip_address}")
                    print()
                    print(f"You should now be able to connect via VNC to: {ip_address}")
                    if self.logger:
                        self.logger.log_wifi_setup(ssid, CONNECTED, ip_address)
                    return SetupResult(CONNECTED, ssid=ssid, ip_address=ip_address)
            print(".", end="", flush=True)
            self.sleep(conn.poll_interval)

        print()
        print("⚠ Connection failed. Please check:")
        print("  - Network name is correct")
        print("  - Password is correct")
        print("  - Network is in range and working")
        if self.logger:
            self.logger.log_wifi_setup(ssid, TIMEOUT)
        return SetupResult(TIMEOUT, ssid=ssid)

    def show_final_status(self) -> RecoveryStatus:
        """Re-check VNC, WiFi and SSH and print next steps."""
        svc = self.config.services
        print()
        print(BANNER)
        print("RECOVERY STATUS")
        print(BANNER)

        status = RecoveryStatus(
            vnc_running=self.services.is_active(svc.vnc_service),
            ssh_running=False,
        )

        if status.vnc_running:
            print("✓ VNC Server: RUNNING")
        else:
            print("✗ VNC Server: NOT RUNNING")

        status.ip_address = self.interface.ip_address()
        if status.ip_address:
            print(f"✓ WiFi: CONNECTED ({status.ip_address})")
            status.ssid = self.interface.current_ssid()
            print(f"  Network: {status.ssid or ''}")
        else:
            print("✗ WiFi: NOT CONNECTED")

        status.ssh_running = self.services.is_active(svc.ssh_service)
        if status.ssh_running:
            print("✓ SSH: RUNNING")
        else:
            print("✗ SSH: NOT RUNNING")

        if status.ip_address:
            status.internet = self.internet_check(self.config.network.interface)
            if status.internet:
                print("✓ Internet: REACHABLE")
            else:
                print("⚠ Internet: UNREACHABLE")

        print()
        print(BANNER)
        print("NEXT STEPS")
        print(BANNER)

        if status.ip_address:
            print(f"1. Try connecting via VNC to: {status.ip_address}")
            print(f"2. Use VNC port {self.config.connection.vnc_port} (default)")
            print("3. If VNC still doesn't work, try rebooting:")
            print("   sudo reboot")
        else:
            print("1. WiFi is not connected. Run this tool again to set up WiFi")
            print("2. Or manually configure WiFi using raspi-config:")
            print("   sudo raspi-config")

        print()
        print("If you need to run this tool again:")
        print("sudo rpi-recovery")
        return status

    def confirm_wifi_setup(self) -> bool:
        """Ask whether to run the interactive WiFi setup (only 'y' or 'Y' accepts)."""
        print()
        answer = self._prompt(self.input_func, "Would you like to set up WiFi now? (y/n): ")
        return re.fullmatch(r"[Yy]", answer.strip()) is not None

    def run(self) -> RecoveryStatus:
        """Run every phase in order."""
        self.immediate_fixes()
        self.diagnose()

        if self.confirm_wifi_setup():
            self.setup_wifi_interactive()

        return self.show_final_status()
