"""Shared helpers: command execution, configuration loading, archives and directory trees."""
