"""Watches a download directory and moves finished torrents into a media library."""

__version__ = "1.4.0"
