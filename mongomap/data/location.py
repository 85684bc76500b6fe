#!/usr/bin/env python
"""
@file mongomap/data/location.py
@brief Locations addressing store records, and their normalization

A location has the form scheme://host[:port]/database/collection/id with an
optional ?query and #fragment. The id segment may be empty for a resource
that has not been saved yet, or for a query over the collection.
"""

from urllib.parse import quote, unquote, urlsplit

from mongomap.core import mapconst as mc
from mongomap.core import mapinit

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

CONF = mapinit.config(__name__)


class Location(object):
    """
    @brief Immutable, hashable value for a hierarchical store address.
    Segments are held decoded; str() gives the encoded form.
    """

    __slots__ = ('scheme', 'authority', 'segments', 'query', 'fragment')

    def __init__(self, scheme, authority, segments=(), query=None, fragment=None):
        self.scheme = scheme
        self.authority = authority
        self.segments = tuple(segments)
        self.query = query
        self.fragment = fragment

    @classmethod
    def parse(cls, text):
        if isinstance(text, Location):
            return text
        parts = urlsplit(text)
        path = parts.path
        if path.startswith('/'):
            path = path[1:]
        segments = [unquote(s) for s in path.split('/')] if path else []
        query = parts.query if parts.query or '?' in text else None
        fragment = parts.fragment if parts.fragment or '#' in text else None
        return cls(parts.scheme, parts.netloc, segments, query, fragment)

    def __str__(self):
        text = '%s://%s' % (self.scheme, self.authority)
        if self.segments:
            text += '/' + '/'.join(quote(s, safe='') for s in self.segments)
        if self.query is not None:
            text += '?' + self.query
        if self.fragment is not None:
            text += '#' + self.fragment
        return text

    def __repr__(self):
        return '<Location %s>' % self

    def _key(self):
        return (self.scheme, self.authority, self.segments, self.query, self.fragment)

    def __eq__(self, other):
        if not isinstance(other, Location):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    @property
    def host(self):
        return urlsplit('//' + self.authority).hostname

    @property
    def port(self):
        return urlsplit('//' + self.authority).port

    def segment_count(self):
        return len(self.segments)

    def segment(self, index):
        return self.segments[index]

    def has_query(self):
        return self.query is not None

    def with_segments(self, segments):
        return Location(self.scheme, self.authority, segments, self.query, self.fragment)

    def with_last_segment(self, value):
        return self.with_segments(self.segments[:-1] + (value,))

    def with_query(self, query):
        return Location(self.scheme, self.authority, self.segments, query, self.fragment)

    def with_fragment(self, fragment):
        return Location(self.scheme, self.authority, self.segments, self.query, fragment)

    def trim_query(self):
        return self.with_query(None)

    def trim_fragment(self):
        return self.with_fragment(None)


class LocationConverter(object):
    """
    @brief Normalizes locations so that equivalent textual forms compare
    equal. Canonicalization lower-cases scheme and host, maps the scheme
    aliases onto the canonical scheme and drops the default port; then the
    longest matching prefix of the location map is replaced.
    """

    def __init__(self, location_map=None, default_port=mc.DEFAULT_PORT):
        self.location_map = dict(location_map or {})
        self.default_port = default_port

    @classmethod
    def from_config(cls):
        return cls(CONF.getValue('location_map', {}),
                   CONF.getValue('default_port', mc.DEFAULT_PORT))

    def add_mapping(self, prefix, replacement):
        self.location_map[str(prefix)] = str(replacement)

    def canonical(self, location):
        scheme = location.scheme.lower()
        if scheme in mc.SCHEME_ALIASES:
            scheme = mc.SCHEME
        userinfo, sep, _ = location.authority.rpartition('@')
        host = location.host
        if host is None:
            authority = location.authority
        else:
            port = location.port
            if ':' in host:
                host = '[%s]' % host
            authority = host
            if port is not None and port != self.default_port:
                authority += ':%d' % port
            if sep:
                authority = userinfo + sep + authority
        return Location(scheme, authority, location.segments, location.query, location.fragment)

    def normalize(self, location):
        location = self.canonical(Location.parse(location))
        if not self.location_map:
            return location
        text = str(location)
        for prefix in sorted(self.location_map, key=len, reverse=True):
            if text.startswith(prefix):
                mapped = Location.parse(self.location_map[prefix] + text[len(prefix):])
                log.debug('Mapped location %s to %s', text, mapped)
                return self.canonical(mapped)
        return location
