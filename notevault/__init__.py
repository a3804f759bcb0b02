"""Notevault

Search, modify and delete notes in a vault of markdown files by their
frontmatter, path, title and content.
"""

__version__ = "0.1.0"
