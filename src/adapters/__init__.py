"""Slack adapters implementing the core ports."""
