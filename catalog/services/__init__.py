"""Volume Catalog - Services Package

This package contains service modules for external integrations:
- Google Books API service
- HTTP client abstraction
"""
