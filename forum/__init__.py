"""
Forum backend package.

This package provides a FastAPI application for a small community forum
(accounts, posts, member list and file uploads) with storage and database
abstractions, plus a client helper that consumes the same API.
"""
