"""Neighborhood sale-price map engine: snapshots, series, colors and playback."""

__version__ = "0.1.0"
