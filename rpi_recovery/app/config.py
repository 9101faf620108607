"""Configuration management for RPI Recovery.

Loads configuration from config.ini (if present) with fallback to environment variables.
Config.ini takes precedence over environment variables.
"""
import os
from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class NetworkConfig:
    """Wireless interface and wpa_supplicant configuration."""
    interface: str = "wlan0"
    wpa_config_path: str = "/etc/wpa_supplicant/wpa_supplicant.conf"
    country: str = "US"
    backup_suffix: str = ".emergency_backup"


@dataclass
class ServicesConfig:
    """systemd units touched during recovery."""
    ssh_service: str = "ssh"
    vnc_service: str = "vncserver-x11-serviced"
    network_services: list[str] = field(
        default_factory=lambda: ["dhcpcd", "wpa_supplicant", "networking"]
    )
    wifi_services: list[str] = field(
        default_factory=lambda: ["wpa_supplicant", "dhcpcd"]
    )


@dataclass
class SystemConfig:
    """Command execution settings."""
    use_sudo: bool = True
    command_timeout: int = 30


@dataclass
class ConnectionConfig:
    """WiFi connection polling behaviour."""
    poll_attempts: int = 30
    poll_interval: float = 1.0
    dhcp_wait: float = 5.0
    vnc_port: int = 5900


@dataclass
class WebConfig:
    """WiFi provisioning web page."""
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LoggingConfig:
    """Logging configuration."""
    log_file: str = "emergency_recovery.log"
    log_level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""
    network: NetworkConfig = field(default_factory=NetworkConfig)
    services: ServicesConfig = field(default_factory=ServicesConfig)
    system: SystemConfig = field(default_factory=SystemConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _split_list(value: Optional[str], default: list[str]) -> list[str]:
    """Parse a comma-separated list, falling back to ``default`` when empty."""
    if not value:
        return list(default)
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or list(default)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from config.ini or environment variables.

    Priority:
    1. config.ini (if exists)
    2. Environment variables
    3. Default values

    Args:
        config_path: Path to config.ini file. If None, looks next to the package.

    Returns:
        Config object with all settings.

    Raises:
        ValueError: If a setting has an unusable value (empty interface,
            non-positive poll attempts, negative waits).
    """
    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), "..", "config.ini")

    config_file = Path(config_path)
    parser = ConfigParser()

    if config_file.exists():
        print(f"Loading configuration from {config_file}")
        parser.read(config_file)

    # Helper function to get value with priority: config.ini > env var > default
    def get_value(section: str, key: str, env_var: str, default=None, value_type=str):
        if parser.has_section(section) and parser.has_option(section, key):
            value = parser.get(section, key)
            if value_type == bool:
                return parser.getboolean(section, key)
            elif value_type == int:
                return parser.getint(section, key)
            elif value_type == float:
                return parser.getfloat(section, key)
            return value

        env_value = os.getenv(env_var)
        if env_value is not None:
            if value_type == bool:
                return env_value.lower() in ('true', '1', 'yes')
            elif value_type == int:
                return int(env_value)
            elif value_type == float:
                return float(env_value)
            return env_value

        return default

    defaults = Config()

    network = NetworkConfig(
        interface=get_value("network", "interface", "WIFI_INTERFACE", "wlan0", str).strip(),
        wpa_config_path=get_value("network", "wpa_config_path", "WPA_CONFIG_PATH",
                                  defaults.network.wpa_config_path, str),
        country=get_value("network", "country", "WIFI_COUNTRY", "US", str).strip().upper(),
        backup_suffix=get_value("network", "backup_suffix", "WPA_BACKUP_SUFFIX",
                                ".emergency_backup", str),
    )
    if not network.interface:
        raise ValueError("WiFi interface name cannot be empty ([network] interface / WIFI_INTERFACE)")

    services = ServicesConfig(
        ssh_service=get_value("services", "ssh_service", "SSH_SERVICE", "ssh", str),
        vnc_service=get_value("services", "vnc_service", "VNC_SERVICE", "vncserver-x11-serviced", str),
        network_services=_split_list(
            get_value("services", "network_services", "NETWORK_SERVICES", None, str),
            defaults.services.network_services,
        ),
        wifi_services=_split_list(
            get_value("services", "wifi_services", "WIFI_SERVICES", None, str),
            defaults.services.wifi_services,
        ),
    )

    system = SystemConfig(
        use_sudo=get_value("system", "use_sudo", "USE_SUDO", True, bool),
        command_timeout=get_value("system", "command_timeout", "COMMAND_TIMEOUT", 30, int),
    )

    connection = ConnectionConfig(
        poll_attempts=get_value("connection", "poll_attempts", "POLL_ATTEMPTS", 30, int),
        poll_interval=get_value("connection", "poll_interval", "POLL_INTERVAL", 1.0, float),
        dhcp_wait=get_value("connection", "dhcp_wait", "DHCP_WAIT", 5.0, float),
        vnc_port=get_value("connection", "vnc_port", "VNC_PORT", 5900, int),
    )
    if connection.poll_attempts < 1:
        raise ValueError(f"poll_attempts must be at least 1, got {connection.poll_attempts}")
    if connection.poll_interval < 0 or connection.dhcp_wait < 0:
        raise ValueError("poll_interval and dhcp_wait cannot be negative")

    web = WebConfig(
        host=get_value("web", "host", "FLASK_HOST", "0.0.0.0", str),
        port=get_value("web", "port", "FLASK_PORT", 8080, int),
    )

    logging_config = LoggingConfig(
        log_file=get_value("logging", "log_file", "LOG_FILE", "emergency_recovery.log", str),
        log_level=get_value("logging", "log_level", "LOG_LEVEL", "INFO", str),
    )

    return Config(
        network=network,
        services=services,
        system=system,
        connection=connection,
        web=web,
        logging=logging_config,
    )
