"""Shared file and validation helpers."""
