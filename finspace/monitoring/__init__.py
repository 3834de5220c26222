"""Metrics and status endpoints."""
