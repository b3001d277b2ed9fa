"""Tailout - ephemeral Tailscale exit nodes on AWS spot instances."""

__version__ = "0.1.0"
