"""HTTP API layer."""

from __future__ import annotations
