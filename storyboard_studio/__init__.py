"""Storyboard studio: draft, generate and edit video storyboards."""

__version__ = "0.1.0"
