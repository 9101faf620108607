"""wpa_supplicant configuration file handling."""
import shutil
from pathlib import Path
from typing import Optional

from .logger import RecoveryLogger
from .system import CommandRunner

NETWORK_MARKER = b"network={"


def basic_config_text(country: str = "US") -> str:
    """Return the minimal three-line wpa_supplicant configuration."""
    return (
        f"country={country}\n"
        "ctrl_interface=DIR=/var/run/wpa_supplicant GROUP=netdev\n"
        "update_config=1\n"
    )


def generate_network_block(runner: CommandRunner, ssid: str, password: str) -> str:
    """Build a ``network={...}`` block with ``wpa_passphrase``.

    The passphrase is fed on stdin so it never appears in the process list.
    Comment lines (the stdin notice and the plaintext ``#psk=``) are dropped.

    Raises:
        CommandError: If wpa_passphrase rejects the input (e.g. a passphrase
            outside 8..63 characters) or is not installed.
    """
    result = runner.run(["wpa_passphrase", ssid], check=True, input=password + "\n")
    lines = [line for line in result.stdout.splitlines() if not line.strip().startswith("#")]
    return "\n".join(lines).strip() + "\n"


class WpaSupplicantConfig:
    """The on-disk WiFi configuration file and its emergency backup."""

    def __init__(self, path: str, country: str = "US",
                 backup_suffix: str = ".emergency_backup",
                 logger: Optional[RecoveryLogger] = None):
        self.path = Path(path)
        self.country = country
        self.backup_path = self.path.with_name(self.path.name + backup_suffix)
        self.logger = logger

    def exists(self) -> bool:
        return self.path.is_file()

    def count_networks(self) -> int:
        """Count lines declaring a ``network={`` block (0 if the file is unreadable).

        Works on raw bytes so a config in any encoding can be counted.
        """
        try:
            data = self.path.read_bytes()
        except OSError:
            return 0
        return sum(1 for line in data.splitlines() if NETWORK_MARKER in line)

    def create_basic(self) -> None:
        """Overwrite the file with the three-line skeleton."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(basic_config_text(self.country), encoding="utf-8")
        if self.logger:
            self.logger.log_config_change("create", self.path)

    def backup(self) -> Optional[Path]:
        """Copy the current file to the backup path.

        Returns:
            The backup path, or None when there was nothing to back up.
        """
        if not self.exists():
            return None
        shutil.copy2(self.path, self.backup_path)
        if self.logger:
            self.logger.log_config_change("backup", self.backup_path)
        return self.backup_path

    def append_block(self, block: str) -> None:
        """Append a network block, keeping it on its own lines."""
        prefix = ""
        if self.exists():
            current = self.path.read_bytes()
            if current and not current.endswith(b"\n"):
                prefix = "\n"
        else:
            self.path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.path, "a", encoding="utf-8") as f:
            f.write(prefix + block if block.endswith("\n") else prefix + block + "\n")
        if self.logger:
            self.logger.log_config_change("append", self.path)

    def add_network(self, block: str) -> Optional[Path]:
        """Back up the file, then append ``block``. Returns the backup path."""
        backup_path = self.backup()
        self.append_block(block)
        return backup_path
