#!/usr/bin/env python3
"""
Tests for the WiFi provisioning web page (Flask test client, scripted runner).
"""

import tempfile
import unittest
from pathlib import Path

from fakes import WPA_PASSPHRASE_OUTPUT, broken_runner, healthy_runner
from rpi_recovery.app.config import Config
from rpi_recovery.app.logger import RecoveryLogger
from rpi_recovery.app.wpa_config import basic_config_text
from rpi_recovery.piwifi.webapp import create_app


class _WebTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.wpa_path = Path(self._tmp.name) / "wpa_supplicant.conf"
        self.wpa_path.write_text(basic_config_text())
        self.config = Config()
        self.config.network.wpa_config_path = str(self.wpa_path)

    def client(self, runner, logger=None):
        app = create_app(self.config, runner=runner, logger=logger)
        app.config["TESTING"] = True
        return app.test_client()


class TestIndex(_WebTestCase):

    def test_connected_status(self):
        response = self.client(healthy_runner()).get("/")
        self.assertEqual(response.status_code, 200)
        body = response.get_data(as_text=True)
        self.assertIn("VNC Server: RUNNING", body)
        self.assertIn("WiFi: CONNECTED (192.168.1.42)", body)
        self.assertIn("HomeNet", body)
        self.assertIn("CoffeeShop", body)
        self.assertIn("0 configured network(s)", body)

    def test_disconnected_status(self):
        body = self.client(broken_runner()).get("/").get_data(as_text=True)
        self.assertIn("VNC Server: NOT RUNNING", body)
        self.assertIn("WiFi: NOT CONNECTED", body)
        self.assertIn("DOWN", body)

    def test_message_is_shown(self):
        body = self.client(healthy_runner()).get("/?message=hello").get_data(as_text=True)
        self.assertIn("hello", body)

    def test_non_utf8_config_renders(self):
        self.wpa_path.write_bytes(b"country=FR\n# r\xe9seau maison\nnetwork={\n\tssid=\"Maison\"\n}\n")
        response = self.client(healthy_runner()).get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("1 configured network(s)", response.get_data(as_text=True))

    def test_recent_activity_from_log(self):
        self.config.logging.log_file = str(Path(self._tmp.name) / "recovery.log")
        logger = RecoveryLogger(self.config.logging)
        self.addCleanup(logger.close)
        logger.log_command(["systemctl", "restart", "dhcpcd"], 0)
        logger.log_error("Web WiFi setup failed: boom", {"ssid": "HomeNet"})

        body = self.client(healthy_runner(), logger=logger).get("/").get_data(as_text=True)
        self.assertIn("Recent activity", body)
        self.assertIn("systemctl restart dhcpcd (rc=0)", body)
        self.assertIn("Web WiFi setup failed: boom", body)

    def test_no_recent_activity_without_logger(self):
        body = self.client(healthy_runner()).get("/").get_data(as_text=True)
        self.assertNotIn("Recent activity", body)


class TestConnect(_WebTestCase):

    def test_empty_ssid_changes_nothing(self):
        runner = broken_runner()
        response = self.client(runner).post("/connect", data={"ssid": "  ", "password": "hunter2222"})
        self.assertEqual(response.status_code, 302)
        self.assertIn("SSID+cannot+be+empty", response.headers["Location"])
        self.assertEqual(self.wpa_path.read_text(), basic_config_text())

    def test_empty_password_changes_nothing(self):
        runner = broken_runner()
        response = self.client(runner).post("/connect", data={"ssid": "HomeNet", "password": ""})
        self.assertEqual(response.status_code, 302)
        self.assertEqual(self.wpa_path.read_text(), basic_config_text())
        self.assertFalse(any(c[0] == "wpa_passphrase" for c in runner.calls))

    def test_adds_network_and_restarts_services(self):
        runner = broken_runner()
        runner.set(["wpa_passphrase", "HomeNet"], 0,
                   WPA_PASSPHRASE_OUTPUT.format(ssid="HomeNet", password="hunter2222"))
        response = self.client(runner).post("/connect", data={"ssid": "HomeNet", "password": "hunter2222"})

        self.assertEqual(response.status_code, 302)
        self.assertEqual(runner.inputs[runner.calls.index(["wpa_passphrase", "HomeNet"])], "hunter2222\n")
        self.assertFalse(any("hunter2222" in call for call in runner.calls))
        self.assertEqual(self.wpa_path.read_text().count("network={"), 1)
        backup = self.wpa_path.with_name("wpa_supplicant.conf.emergency_backup")
        self.assertEqual(backup.read_text(), basic_config_text())
        self.assertTrue(runner.called(["systemctl", "restart", "wpa_supplicant"]))
        self.assertTrue(runner.called(["systemctl", "restart", "dhcpcd"]))

    def test_rejected_passphrase_reports_error(self):
        runner = broken_runner()
        runner.set(["wpa_passphrase", "HomeNet"], 1, "Passphrase must be 8..63 characters\n")
        client = self.client(runner)
        response = client.post("/connect", data={"ssid": "HomeNet", "password": "short"})

        self.assertEqual(response.status_code, 302)
        self.assertIn("Could+not+add+HomeNet", response.headers["Location"])
        self.assertEqual(self.wpa_path.read_text(), basic_config_text())

    def test_failed_restart_reports_error(self):
        runner = broken_runner()
        runner.set(["wpa_passphrase", "HomeNet"], 0,
                   WPA_PASSPHRASE_OUTPUT.format(ssid="HomeNet", password="hunter2222"))
        runner.set(["systemctl", "restart", "wpa_supplicant"], 5, "", "Unit wpa_supplicant.service not found.")
        response = self.client(runner).post("/connect", data={"ssid": "HomeNet", "password": "hunter2222"})
        self.assertIn("Could+not+add+HomeNet", response.headers["Location"])


class TestRepair(_WebTestCase):

    def test_runs_immediate_fixes(self):
        runner = broken_runner()
        response = self.client(runner).post("/repair")
        self.assertEqual(response.status_code, 302)
        self.assertTrue(runner.called(["raspi-config", "nonint", "do_vnc", "0"]))
        self.assertTrue(runner.called(["systemctl", "restart", "networking"]))


if __name__ == "__main__":
    unittest.main()
