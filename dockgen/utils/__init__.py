"""Shared utilities for dockgen."""
