"""Ashteams chat backend: chats, messages and AI replies over a REST API."""

__version__ = "0.1.0"
