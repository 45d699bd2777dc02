"""Contextual Recall: spaced repetition over the headings of Markdown notes."""
