"""
@file mongomap/__init__.py
@brief MongoDB persistence mapping for reflective data objects
"""

__version__ = '0.1.0'
