"""Presentation layer: HTTP routes, schemas and request identity."""
