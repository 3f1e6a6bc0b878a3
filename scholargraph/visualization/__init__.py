"""Rendering helpers for laid-out graphs."""
