"""floe-cli: command line host for floe-hive catalog procedures."""

from __future__ import annotations

__version__ = "0.1.0"
