"""Inkwell realtime delivery core."""
