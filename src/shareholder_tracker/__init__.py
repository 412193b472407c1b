"""Shareholder Tracker - change analytics over periodic ownership snapshots."""

__version__ = "0.1.0"
