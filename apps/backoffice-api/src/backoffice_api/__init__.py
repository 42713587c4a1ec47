"""Backoffice HTTP API."""
