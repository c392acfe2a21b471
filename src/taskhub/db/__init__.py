"""Database utilities."""

from __future__ import annotations
