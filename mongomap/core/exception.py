#!/usr/bin/env python

"""
@file mongomap/core/exception.py
@brief module for exceptions
"""

class MongoMapError(Exception):
    pass

class FormatError(MongoMapError):
    """
    Malformed location or document: wrong segment count, unknown class,
    missing id where one is required. Never retried.
    """

class NotFoundError(MongoMapError):
    """
    A resource or document could not be resolved.
    """

class StoreError(MongoMapError):
    """
    Network or database failure reported by the store client. The client
    exception is chained as __cause__.
    """

class ConfigurationError(MongoMapError):
    """
    Misconfiguration, e.g. no registered handler can create a resource for
    a location.
    """

class IllegalStateError(MongoMapError):
    pass
