"""Bangumi subject archiver: collect subject ids, then fetch each subject under a rate limit."""

__version__ = "0.1.0"
