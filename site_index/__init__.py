# site_index/__init__.py
"""
SiteIndex package initializer.
Defines package version and exposes CLI.
"""
__version__ = "0.1.0"

# Expose CLI entry point
from site_index.cli import cli  # noqa: E402
