#!/usr/bin/env python
"""
@file mongomap/data/query.py
@brief Results of locations addressing a collection rather than a record

The query component of a location holds a JSON filter, URL encoded or not:
store://localhost/app/people/?{"name": "Ada"}
Extended JSON is accepted, e.g. {"_id": {"$oid": "..."}}.
"""

from urllib.parse import unquote

from bson import json_util
from bson.errors import BSONError

from mongomap.core.exception import FormatError
from mongomap.data.dataobject import DataObject, Reference


def parse_query(location):
    """
    @retval filter document for the query component of location; the
        empty filter when there is none
    @throws FormatError if the query is not a JSON object
    """
    if not location.query:
        return {}
    try:
        query = json_util.loads(unquote(location.query))
    except (ValueError, BSONError) as ex:
        raise FormatError("Malformed query '%s': %s" % (location.query, ex)) from ex
    if not isinstance(query, dict):
        raise FormatError("Query must be a JSON object, received '%s'" % location.query)
    return query


class QueryResult(DataObject):
    """
    @brief Objects matching a query. Each value is the root object of its
    own resource in the resource set.
    """
    values = Reference(DataObject, many=True)


class ResultCursor(DataObject):
    """
    @brief Iterates over the matching documents, building each object
    when reached.
    """

    def __init__(self, **kwargs):
        DataObject.__init__(self, **kwargs)
        self._cursor = iter(())
        self._build = None

    def bind(self, cursor, build):
        self._cursor = cursor
        self._build = build

    def __iter__(self):
        for document in self._cursor:
            yield self._build(document)
