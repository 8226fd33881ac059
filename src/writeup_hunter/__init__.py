"""
Writeup Hunter - security write-up feed watcher.

This package polls RSS/Atom/JSON feeds, matches new items against a keyword
taxonomy, deduplicates them against an append-only log and posts the matches
to Telegram forum topics.
"""

__version__ = "0.1.0"
