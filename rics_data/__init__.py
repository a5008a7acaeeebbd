"""Robot data collection parts: MQTT transport, fleet-command listener, disk cache and upload requests."""

__version__ = "0.1.0"