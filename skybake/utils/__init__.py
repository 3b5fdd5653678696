"""Utility functions for skybake."""
