"""RPI Emergency Recovery - Main entry point.

Use this when the Pi is only reachable over SSH and VNC/WiFi need restoring:
- Enables and starts SSH and VNC
- Brings the wireless interface up and restarts network services
- Diagnoses VNC, interface, wpa_supplicant and address state
- Optionally adds a WiFi network and waits for it to connect
"""
import os
import signal
import sys

from .config import load_config
from .logger import RecoveryLogger
from .recovery import BANNER, EmergencyRecovery
from .system import CommandRunner


def print_banner() -> None:
    print(BANNER)
    print("EMERGENCY RASPBERRY PI RECOVERY")
    print(BANNER)
    print("This tool will attempt to restore VNC and WiFi connectivity")
    print()


def print_closing() -> None:
    print()
    print("Emergency recovery completed.")
    print("If you're still having issues, try rebooting: sudo reboot")


def main():
    """Main application entry point."""
    logger = None

    def cleanup():
        """Cleanup resources before exit."""
        if logger is not None:
            logger.close()

    def signal_handler(signum, frame):
        """Handle termination signals."""
        print(f"\n📡 Received signal {signum}")
        cleanup()
        sys.exit(0)

    # Register signal handlers for clean shutdown
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    print_banner()

    try:
        config = load_config()
    except ValueError as e:
        print(f"\n❌ Configuration error: {e}")
        sys.exit(1)

    try:
        try:
            logger = RecoveryLogger(config.logging)
        except OSError as e:
            print(f"⚠️  Could not open log file {config.logging.log_file}: {e}")
            logger = None

        if hasattr(os, "geteuid") and os.geteuid() != 0:
            print("⚠️  Not running as root: configuration changes may fail (try: sudo rpi-recovery)")

        runner = CommandRunner(config.system, logger=logger)
        recovery = EmergencyRecovery(config, runner, logger=logger)
        recovery.run()

        print_closing()

    except KeyboardInterrupt:
        print("\n\n👋 Shutting down...")
        cleanup()
        sys.exit(0)
    finally:
        cleanup()


if __name__ == "__main__":
    main()
