"""
Core modules for AI Writing Guard.

This package contains request validation, prompt construction,
generation with fallback, quota enforcement and the error taxonomy.
"""
