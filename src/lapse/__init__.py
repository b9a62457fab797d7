"""Lapse: time entries stored in Markdown frontmatter, cached and queried."""

__version__ = "0.4.0"
