"""Ports, event bus and shared application state."""
