"""Utility modules for Contextual Recall."""
