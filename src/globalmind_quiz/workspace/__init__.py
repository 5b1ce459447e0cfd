"""Workspace CLI helpers."""
