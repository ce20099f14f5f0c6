"""
Core upload rules.

This module is framework-agnostic - it doesn't import the storage SDK or
any infrastructure concerns. Key layout and metadata can be tested in
isolation.
"""
