"""Volume Catalog - Core Application Package

This package contains the core catalog modules including:
- ISBN validation and conversion (isbn.py)
- Author/category deduplication (dedup.py)
- Catalog management logic (catalog.py)
- Data models (volume.py)
- Authentication (auth.py)
"""
