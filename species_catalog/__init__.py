"""
Species catalog service.

This package provides a FastAPI application for browsing species records,
discussing them in per-species comment threads and listing registered users,
with database and storage abstractions so the relational backend can be
swapped for an in-memory one during development and tests.
"""
