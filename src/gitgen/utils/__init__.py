"""Utility functions for GitGen."""
