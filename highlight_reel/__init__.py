"""Highlight reel rendering service for event photo galleries."""
