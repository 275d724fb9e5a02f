"""Core auction components."""
