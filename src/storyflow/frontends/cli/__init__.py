"""Command-line interface for storyflow."""

from storyflow.frontends.cli.main import main

__all__ = ["main"]
