"""
Raspberry Pi Emergency Recovery Package

Restores VNC and WiFi access on a Raspberry Pi that is only reachable over
SSH, with an optional web page for WiFi provisioning.
"""

__version__ = "1.0.0"
