"""Command line interface and terminal prompts."""

from __future__ import annotations

from tailout.cli.prompts import Prompter

__all__ = ["Prompter"]
