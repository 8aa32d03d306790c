"""Utility helpers for ProjectHub AI."""
