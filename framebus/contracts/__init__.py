"""Contracts package.

This package defines the *public* host/frame contract: the envelope type
catalog, admin action names, and the typed payload of every request.
Both sides may only share types via `framebus.core` and `framebus.contracts`.
"""
