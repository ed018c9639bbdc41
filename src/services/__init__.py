"""
Pure parsing and utility functions used by the claim pipeline.

This package contains reusable service functions for header scanning, body
extraction, keyword matching, hashing and S3/configuration access.
"""

__all__ = ['blueprints', 'email', 'hashing', 'headers', 'keywords', 's3']
