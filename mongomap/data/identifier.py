#!/usr/bin/env python
"""
@file mongomap/data/identifier.py
@brief How the primary key of a document is obtained

An id named in the location is tried as an ObjectId first; a segment that
does not parse as one is used as the raw string. With no id in the location
the object's id attribute can serve as the key, otherwise the store assigns
an ObjectId on insert.
"""

from bson import ObjectId
from bson.errors import InvalidId

from mongomap.core import mapconst as mc
from mongomap.core.exception import FormatError
from mongomap.data.dataobject import describe

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

LOCATION_FORMAT = "location must be of the form scheme://host[:port]/database/collection/[id]"


def check_location(location):
    """
    @brief Requires the path to be exactly /database/collection/{id}
    @throws FormatError otherwise
    """
    if location.segment_count() != 3:
        raise FormatError("%s, received '%s'" % (LOCATION_FORMAT, location))


class IdentifierPolicy(object):

    def extract_id(self, location):
        """
        @brief The id segment of the location
        @retval ObjectId, the raw segment string when it is not an ObjectId,
            or None when the segment is empty
        """
        check_location(location)
        segment = location.segment(2)
        if not segment:
            return None
        try:
            return ObjectId(segment)
        except (InvalidId, TypeError):
            return segment

    def assign_id(self, document, obj, location, options=None):
        """
        @brief Picks the _id of the document built for obj and stores it in
        the document. Leaves the document without _id when the store has to
        assign one.
        @retval the id, or None
        """
        options = options or {}
        id = None
        if location is not None:
            id = self.extract_id(location)

        if id is None and options.get(mc.OPTION_USE_ID_ATTRIBUTE_AS_PRIMARY_KEY):
            attribute = describe(obj).id_attribute
            if attribute is not None and attribute.is_set(obj):
                value = attribute.get_raw(obj)
                if value is not None and value != attribute.default:
                    # Non string keys would not survive the trip through
                    # the location.
                    id = value if isinstance(value, str) else str(value)

        if id is not None:
            document[mc.ID_KEY] = id
        else:
            document.pop(mc.ID_KEY, None)
        return id

    def location_with_id(self, location, id):
        """
        @retval the location with its id segment replaced by id
        """
        check_location(location)
        return location.with_last_segment('' if id is None else str(id))
