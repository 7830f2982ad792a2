"""Utility helpers shared across the live file package."""
