"""Inkwell backend application."""
