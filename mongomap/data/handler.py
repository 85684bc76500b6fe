#!/usr/bin/env python
"""
@file mongomap/data/handler.py
@brief Location handler persisting resources in MongoDB

The handler accepts locations of the store scheme whose path has exactly
three segments, /database/collection/{id}. The id is optional the first time
an object is saved: the store then assigns one and the location of the
resource is rewritten to include it.

  store://localhost/data/people/
  store://localhost/data/people/4d0a3e259095b5b334a59df0

Locations with an empty id or a query component load query results.
"""

from zope.interface import Interface, implementer

from pymongo.errors import PyMongoError

from mongomap.core import mapconst as mc
from mongomap.core import mapinit
from mongomap.core.exception import FormatError, IllegalStateError, NotFoundError, StoreError
from mongomap.data.builders import BuilderFactory
from mongomap.data.converter import ConverterService
from mongomap.data.dataobject import registry as default_registry
from mongomap.data.identifier import IdentifierPolicy
from mongomap.data.query import QueryResult, ResultCursor, parse_query
from mongomap.data.resolver import LocationResolver
from mongomap.data.resource import ResourceSet
from mongomap.data.store import MongoLocator

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

CONF = mapinit.config(__name__)


class ILocationHandler(Interface):
    """
    Interface of the handlers a resource set delegates storage to.
    """

    def can_handle(location):
        """
        @retval True if the handler stores resources at location
        """

    def load(resource, options):
        """
        @brief Fills the resource with the objects stored at its location
        """

    def save(resource, options):
        """
        @brief Stores the root object of the resource
        """

    def delete(location, options):
        """
        @brief Removes the document stored at location
        """

    def exists(location, options):
        """
        @retval True if a document is stored at location; never raises
        """


@implementer(ILocationHandler)
class MongoHandler(object):

    def __init__(self, locator, converter_service=None, registry=None,
                 builder_factory=None, identifier_policy=None, schemes=None):
        """
        @param locator IMongoLocator handing out store clients
        @param converter_service converts attribute values of non native types
        @param registry ClassRegistry resolving the _class of documents
        """
        if schemes is None:
            schemes = CONF.getValue('schemes')
        self.resolver = LocationResolver(locator, schemes)
        self.converter_service = converter_service or ConverterService()
        self.registry = registry or default_registry
        self.builder_factory = builder_factory or BuilderFactory()
        self.identifier_policy = identifier_policy or IdentifierPolicy()
        self.track_timestamps = CONF.getValue('track_timestamps', False)
        self.track_extrinsic_ids = CONF.getValue('track_extrinsic_ids', False)
        self.class_cache = {}

    def can_handle(self, location):
        return self.resolver.can_handle(location)

    def _call(self, operation, *args, **kwargs):
        try:
            return operation(*args, **kwargs)
        except PyMongoError as ex:
            log.error('Store operation %s failed: %s', getattr(operation, '__name__', operation), ex)
            raise StoreError(str(ex)) from ex

    def _iterate(self, cursor):
        try:
            for document in cursor:
                yield document
        except PyMongoError as ex:
            log.error('Iterating query results failed: %s', ex)
            raise StoreError(str(ex)) from ex

    def document_builder(self, options):
        return self.builder_factory.create_document_builder(
            self.converter_service, self.identifier_policy,
            options.get(mc.OPTION_SERIALIZE_DEFAULT_ATTRIBUTE_VALUES, False),
            self.track_timestamps)

    def object_builder(self, options):
        return self.builder_factory.create_object_builder(
            self.converter_service, self.registry,
            options.get(mc.OPTION_PROXY_ATTRIBUTES, False), self.class_cache)

    def load(self, resource, options):
        location = resource.location
        collection = self.resolver.get_collection(location, options)
        id = self.identifier_policy.extract_id(location)

        if id is None or location.has_query():
            self._load_query(resource, collection, options)
            return

        document = self._call(collection.find_one, {mc.ID_KEY: id})
        if document is None:
            raise NotFoundError("No document stored at '%s'" % location)
        log.debug('Loaded %s', location)
        obj = self.object_builder(options).build(document, resource.resource_set, options, resource)
        resource.contents.append(obj)

    def _load_query(self, resource, collection, options):
        query = parse_query(resource.location)
        cursor = self._call(collection.find, query)
        builder = self.object_builder(options)
        base = resource.location.trim_query()

        def build(document):
            return self._build_result(document, base, builder, resource.resource_set, options)

        if options.get(mc.OPTION_QUERY_CURSOR):
            result = ResultCursor()
            result.bind(self._iterate(cursor), build)
        else:
            result = QueryResult()
            result.values.extend(build(d) for d in self._iterate(cursor))
        log.debug('Queried %s with %r', base, query)
        resource.contents.append(result)

    def _build_result(self, document, base, builder, resource_set, options):
        """
        @brief Each query result is the root of its own resource, so results
        already loaded keep their identity.
        """
        if resource_set is None:
            return builder.build(document, None, options)
        location = self.identifier_policy.location_with_id(base, document.get(mc.ID_KEY))
        target = resource_set.get_resource(location, False)
        if target is not None and target.loaded and target.contents:
            return target.contents[0]
        if target is None:
            target = resource_set.create_resource(location)
        obj = builder.build(document, resource_set, options, target)
        target.set_loaded_contents([obj])
        return obj

    def save(self, resource, options):
        """
        @brief Upserts the root object of the resource. An object without id
        is inserted and the store assigned id completes the location.
        @throws IllegalStateError if the resource holds more than one root;
            a location addresses a single document
        """
        location = resource.location
        if location is None:
            raise FormatError('Cannot save %r without a location' % resource)
        if len(resource.contents) > 1:
            log.error('Cannot save %d roots at %s', len(resource.contents), location)
            raise IllegalStateError("A resource stored at '%s' holds a single root, found %d"
                                    % (location, len(resource.contents)))
        collection = self.resolver.get_collection(location, options)
        if not resource.contents:
            return
        obj = resource.contents[0]

        if self.track_extrinsic_ids and resource.get_id(obj) is None:
            resource.set_id(obj, '0')
        document = self.document_builder(options).build(obj, options, location)
        id = document.get(mc.ID_KEY)
        if id is None:
            id = self._call(collection.insert_one, document).inserted_id
            log.debug('Inserted %s into %s', id, location)
        else:
            self._call(collection.replace_one, {mc.ID_KEY: id}, document, upsert=True)
            log.debug('Updated %s in %s', id, location)

        new_location = self.identifier_policy.location_with_id(location, id)
        if new_location != location:
            resource.location = new_location

    def delete(self, location, options):
        """
        @brief Removes the one document matching the id of the location
        @throws FormatError if the location carries no id
        """
        collection = self.resolver.get_collection(location, options)
        id = self.identifier_policy.extract_id(location)
        if id is None:
            raise FormatError("Cannot delete '%s': the location carries no id" % location)
        self._call(collection.find_one_and_delete, {mc.ID_KEY: id})
        log.debug('Deleted %s', location)

    def exists(self, location, options):
        if location.has_query():
            return False
        try:
            collection = self.resolver.get_collection(location, options)
            return collection.find_one({mc.ID_KEY: self.identifier_policy.extract_id(location)}) is not None
        except Exception as ex:
            log.debug('exists(%s) is False: %s', location, ex)
            return False


def create_resource_set(locator=None, converter_service=None, registry=None, **kwargs):
    """
    @brief A resource set handling store locations with a MongoHandler
    @param locator IMongoLocator, a MongoLocator when omitted
    """
    if locator is None:
        locator = MongoLocator()
    handler = MongoHandler(locator, converter_service, registry)
    return ResourceSet(handlers=[handler], **kwargs)
