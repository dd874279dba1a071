"""
Command-line interface for the xcprofiler package.

This module provides the main CLI entry point for the profiling application.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
