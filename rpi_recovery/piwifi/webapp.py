from pathlib import Path
from typing import Optional

from flask import Flask, redirect, render_template, request, url_for

from ..app.config import Config, load_config
from ..app.logger import RecoveryLogger
from ..app.recovery import EmergencyRecovery
from ..app.system import CommandError, CommandRunner
from ..app.wpa_config import generate_network_block

RECENT_ENTRIES = 10


def build_recovery(config: Config, runner: Optional[CommandRunner] = None,
                   logger: Optional[RecoveryLogger] = None) -> EmergencyRecovery:
    runner = runner or CommandRunner(config.system, logger=logger)
    return EmergencyRecovery(config, runner, logger=logger)


def status_snapshot(recovery: EmergencyRecovery) -> dict:
    services = recovery.config.services
    iface = recovery.interface
    wpa = recovery.wpa
    return {
        "iface": iface.name,
        "iface_present": iface.exists(),
        "iface_up": iface.is_up(),
        "vnc_running": recovery.services.is_active(services.vnc_service),
        "ssh_running": recovery.services.is_active(services.ssh_service),
        "ssid": iface.current_ssid(),
        "ip_address": iface.ip_address(),
        "config_path": str(wpa.path),
        "config_present": wpa.exists(),
        "network_count": wpa.count_networks(),
        "ssids": iface.scan_ssids(),
    }


def create_app(config: Optional[Config] = None, runner: Optional[CommandRunner] = None,
               logger: Optional[RecoveryLogger] = None) -> Flask:
    config = config or load_config()
    recovery = build_recovery(config, runner, logger)

    # Ensure templates are found when running as module
    pkg_dir = Path(__file__).resolve().parent
    templates_dir = pkg_dir / "templates"
    app = Flask(__name__, template_folder=str(templates_dir))
    app.config["RECOVERY"] = recovery

    @app.get("/")
    def index():
        return render_template(
            "index.html",
            message=request.args.get("message", ""),
            recent=logger.get_log_summary(RECENT_ENTRIES) if logger else [],
            **status_snapshot(recovery),
        )

    @app.post("/connect")
    def connect():
        ssid = request.form.get("ssid", "").strip()
        password = request.form.get("password", "")

        if not ssid:
            return redirect(url_for("index", message="SSID cannot be empty"))
        if not password:
            return redirect(url_for("index", message="Password cannot be empty"))

        try:
            block = generate_network_block(recovery.runner, ssid, password)
            recovery.wpa.add_network(block)
            for service in config.services.wifi_services:
                recovery.runner.run(["systemctl", "restart", service], elevate=True, check=True)
        except (CommandError, OSError) as e:
            if logger:
                logger.log_error(f"Web WiFi setup failed: {e}", {"ssid": ssid})
            return redirect(url_for("index", message=f"Could not add {ssid}: {e}"))

        if logger:
            logger.log_wifi_setup(ssid, "submitted")
        return redirect(url_for("index", message=f"Network {ssid} added, connecting..."))

    @app.post("/repair")
    def repair():
        recovery.immediate_fixes()
        return redirect(url_for("index", message="Immediate fixes applied"))

    return app


def main() -> None:
    config = load_config()
    try:
        logger = RecoveryLogger(config.logging)
    except OSError as e:
        print(f"⚠️  Could not open log file {config.logging.log_file}: {e}")
        logger = None
    app = create_app(config, logger=logger)
    app.run(host=config.web.host, port=config.web.port, debug=False)


if __name__ == "__main__":
    main()
