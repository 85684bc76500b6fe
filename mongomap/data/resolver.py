#!/usr/bin/env python
"""
@file mongomap/data/resolver.py
@brief Resolves a location into store coordinates

The location path must have exactly three segments, /database/collection/{id}.
The scheme and authority make up the connection string handed to the
connection locator, which reuses one client per string.
"""

from collections import namedtuple

from mongomap.core import mapconst as mc
from mongomap.core.exception import FormatError
from mongomap.data.identifier import check_location

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

StoreCoordinates = namedtuple('StoreCoordinates', ['client', 'database_name', 'collection_name'])


class LocationResolver(object):

    def __init__(self, locator, schemes=None):
        """
        @param locator IMongoLocator
        @param schemes accepted location schemes, compared case insensitively
        """
        self.locator = locator
        if schemes is None:
            schemes = (mc.SCHEME,) + mc.SCHEME_ALIASES
        self.schemes = frozenset(s.lower() for s in schemes)

    def can_handle(self, location):
        """
        @retval False for locations of any other scheme, so that the next
            handler can be tried
        """
        return location.scheme.lower() in self.schemes

    def connection_string(self, location):
        return '%s://%s' % (mc.CONNECTION_SCHEME, location.authority)

    def resolve(self, location, options=None):
        """
        @retval StoreCoordinates for the location
        @throws FormatError for unhandled schemes and malformed paths
        """
        if not self.can_handle(location):
            raise FormatError("Unsupported location scheme '%s' in %s" % (location.scheme, location))
        check_location(location)
        client = self.locator.get_client(self.connection_string(location))
        return StoreCoordinates(client, location.segment(0), location.segment(1))

    def get_collection(self, location, options=None):
        """
        @retval the collection the location addresses, with the write concern
            of the options applied
        """
        coordinates = self.resolve(location, options)
        collection = coordinates.client[coordinates.database_name][coordinates.collection_name]
        write_concern = (options or {}).get(mc.OPTION_WRITE_CONCERN)
        if write_concern is not None:
            collection = collection.with_options(write_concern=write_concern)
        return collection
