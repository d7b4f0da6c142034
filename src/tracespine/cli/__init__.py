"""
CLI layer for trace-spine.

Handles only terminal transport: argument parsing, coloured output and
table formatting. Playback logic lives in ``tracespine.playback``.

Entry point::

    trace-spine --help
"""

from tracespine.cli.app import app

__all__ = ["app"]
