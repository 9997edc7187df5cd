"""Mushcord Installer: locate Discord installs, patch them with Mushcord, keep everything up to date."""

__version__ = "1.0.0"
