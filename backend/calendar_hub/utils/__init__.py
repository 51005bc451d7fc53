"""Utilities for Calendar Hub."""
