"""Refresh triggers and status resources for catalog version sync."""
