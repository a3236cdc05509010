"""Shared opsgate helpers used by multiple packages."""

from .paths import REPO_ROOT, SRC_ROOT

__all__ = ["REPO_ROOT", "SRC_ROOT"]
