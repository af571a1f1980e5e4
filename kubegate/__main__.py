"""Entry point for `python -m kubegate`.

Usage:
    python -m kubegate
    MCP_K8S_READONLY=true python -m kubegate
"""

from __future__ import annotations

from kubegate.app import run

run()
