"""Action log for recovery runs."""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import LoggingConfig


class RecoveryLogger:
    """Logger for tracking commands, checks and config changes as JSON lines."""

    def __init__(self, config: LoggingConfig):
        """Initialize recovery logger.

        Args:
            config: Logging configuration.
        """
        self.config = config
        self.log_file = Path(config.log_file)

        # One Python logger per log file so separate runs do not share handlers
        self.logger = logging.getLogger(f"rpi_recovery.actions.{self.log_file.resolve()}")
        self.logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
        self.logger.propagate = False

        if not self.logger.handlers:
            handler = logging.FileHandler(config.log_file)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)

    def _entry(self, entry_type: str, **fields) -> dict:
        entry = {
            "timestamp": datetime.now().isoformat(),
            "type": entry_type,
        }
        entry.update(fields)
        return entry

    def log_command(self, command: list[str], returncode: int, stderr: str = "") -> None:
        """Log an external command invocation.

        Args:
            command: Command and arguments as executed.
            returncode: Exit status of the command.
            stderr: Error output, recorded only for failed commands.
        """
        entry = self._entry("command", command=command, returncode=returncode)
        if returncode != 0 and stderr:
            entry["stderr"] = stderr.strip()

        if returncode == 0:
            self.logger.info(json.dumps(entry))
        else:
            self.logger.warning(json.dumps(entry))

    def log_check(self, name: str, status: str, message: str) -> None:
        """Log a single diagnosis check result."""
        self.logger.info(json.dumps(self._entry("check", name=name, status=status, message=message)))

    def log_config_change(self, action: str, path: str) -> None:
        """Log a change to the WiFi configuration file.

        Args:
            action: One of ``create``, ``backup`` or ``append``.
            path: File that was written.
        """
        self.logger.info(json.dumps(self._entry("config_change", action=action, path=str(path))))

    def log_wifi_setup(self, ssid: str, outcome: str, ip_address: Optional[str] = None) -> None:
        """Log the outcome of a WiFi setup attempt."""
        entry = self._entry("wifi_setup", ssid=ssid, outcome=outcome, ip_address=ip_address)
        self.logger.info(json.dumps(entry))

    def log_error(self, error_message: str, context: Optional[dict] = None) -> None:
        """Log error.

        Args:
            error_message: Error message.
            context: Additional context information.
        """
        entry = self._entry("error", error=error_message)
        if context:
            entry["context"] = context

        self.logger.error(json.dumps(entry))

    def get_log_summary(self, last_n: int = 10) -> list[dict]:
        """Get summary of recent log entries.

        Args:
            last_n: Number of recent entries to return.

        Returns:
            List of log entry dictionaries.
        """
        if not self.log_file.exists():
            return []

        entries = []
        with open(self.log_file, 'r') as f:
            for line in f:
                try:
                    entries.append(json.loads(line.strip()))
                except json.JSONDecodeError:
                    continue

        return entries[-last_n:]

    def close(self) -> None:
        """Flush and detach the file handler."""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
