"""Upstream clients and library services used by the CineLog API."""
