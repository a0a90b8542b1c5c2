"""Shared helpers for imaging and logging setup."""
