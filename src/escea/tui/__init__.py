"""Textual TUI for escea."""

from __future__ import annotations

from escea.tui.app import EsceaApp, run_tui

__all__ = ["EsceaApp", "run_tui"]
