"""
Revault Storage - Google Cloud Storage uploads for the Revault platform.

This package contains:
- core: Framework-agnostic key layout and metadata rules
- infrastructure: Google Cloud Storage client and credential resolution
- config: Application configuration
"""

__version__ = "0.1.0"
