"""Control an ESP8266 Wi-Fi module through its serial AT command interface."""

__version__ = "0.1.0"

__all__ = ["transport", "ipv4", "at_link", "wifi", "esp8266"]