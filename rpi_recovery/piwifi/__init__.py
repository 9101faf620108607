"""
WiFi provisioning page for emergency recovery.

Provides a Flask web interface for checking VNC/SSH/WiFi state and adding a
WiFi network from a browser on the local network.
"""

__version__ = "1.0.0"
