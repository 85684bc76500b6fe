#!/usr/bin/env python
"""
@file mongomap/data/builders.py
@brief Builders between data objects and store documents

DocumentBuilder turns a data object into a document: one key per field that
is set and not at its default, _class with the qualified class name, and
_id for top level documents. Contained objects are embedded; objects
referenced across documents are written as {_proxyLocation, _class} plus
their attribute values. ObjectBuilder does the inverse, turning reference
documents into proxies.
"""

import datetime

from twisted.python import reflect

from mongomap.core import mapconst as mc
from mongomap.core.exception import FormatError
from mongomap.data.dataobject import Attribute, describe
from mongomap.data.location import Location

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)


class DocumentBuilder(object):

    def __init__(self, converter_service, identifier_policy,
                 serialize_default_attribute_values=False, track_timestamps=False):
        self.converter_service = converter_service
        self.identifier_policy = identifier_policy
        self.serialize_default_attribute_values = serialize_default_attribute_values
        self.track_timestamps = track_timestamps

    def build(self, obj, options=None, location=None):
        """
        @brief Builds the top level document for obj
        @param location the location the document is saved under; defaults to
            the location of the resource holding obj
        @retval dict, with _id unless the store has to assign it
        """
        options = options or {}
        if location is None:
            resource = obj.resource
            location = resource.location if resource is not None else None

        document = {}
        self.identifier_policy.assign_id(document, obj, location, options)
        document.update(self._build_object(obj, options))
        if self.track_timestamps:
            document[mc.TIME_STAMP_KEY] = datetime.datetime.now(datetime.timezone.utc)
        return document

    def _serialize_defaults(self, options):
        return options.get(mc.OPTION_SERIALIZE_DEFAULT_ATTRIBUTE_VALUES,
                           self.serialize_default_attribute_values)

    def _skip(self, descriptor, obj, field, options):
        if isinstance(field, Attribute) and self._serialize_defaults(options):
            return False
        if not descriptor.is_set(obj, field):
            return True
        value = descriptor.get(obj, field)
        if field.many:
            return len(value) == 0
        return value == field.default

    def _build_object(self, obj, options):
        descriptor = describe(obj)
        document = {mc.CLASS_KEY: descriptor.name}
        extrinsic_id = self._extrinsic_id(obj)
        if extrinsic_id is not None:
            document[mc.EXTRINSIC_ID_KEY] = extrinsic_id

        for field in descriptor.fields():
            if self._skip(descriptor, obj, field, options):
                continue
            value = descriptor.get(obj, field)
            if isinstance(field, Attribute):
                document[field.name] = self._build_attribute(field, value)
            elif field.many:
                document[field.name] = [self._build_reference(field, v, options) for v in value]
            else:
                document[field.name] = self._build_reference(field, value, options)
        return document

    def _build_attribute(self, field, value):
        if field.many:
            return [self._build_value(field, v) for v in value]
        return self._build_value(field, value)

    def _build_value(self, field, value):
        if field.native or value is None:
            return value
        return self.converter_service.to_store(field.type, value)

    def _build_reference(self, field, value, options):
        if value is None:
            return None
        if value.is_proxy():
            # copied verbatim, never resolved
            document = {mc.PROXY_KEY: str(value._proxy.location),
                        mc.CLASS_KEY: describe(value).name}
            if value._proxy.populated:
                document.update(self._build_attributes(value, options))
            return document

        if field.embeds(value):
            return self._build_object(value, options)

        location = value.location
        if location is None:
            raise FormatError('%r is referenced by %s but is not held by a resource with a location'
                              % (value, field.name))
        document = {mc.PROXY_KEY: str(location), mc.CLASS_KEY: describe(value).name}
        document.update(self._build_attributes(value, options))
        return document

    def _build_attributes(self, obj, options):
        descriptor = describe(obj)
        document = {}
        for field in descriptor.attributes():
            if not self._skip(descriptor, obj, field, options):
                document[field.name] = self._build_attribute(field, descriptor.get(obj, field))
        return document

    def _extrinsic_id(self, obj):
        resource = obj.resource
        if resource is None:
            return None
        return resource.get_id(obj)


class ObjectBuilder(object):

    def __init__(self, converter_service, registry,
                 include_attributes_for_proxy_references=False, class_cache=None):
        self.converter_service = converter_service
        self.registry = registry
        self.include_attributes_for_proxy_references = include_attributes_for_proxy_references
        self.class_cache = class_cache if class_cache is not None else {}

    def build(self, document, resource_set=None, options=None, resource=None):
        """
        @brief Builds the data object stored in document
        @param resource_set resolves the proxies built for cross document
            references
        @param resource receives the extrinsic ids found in the document
        @throws FormatError if the class of the document is unknown
        """
        options = options or {}
        obj = self._build_object(document, None, resource_set, options, resource)
        if resource is not None and document.get(mc.TIME_STAMP_KEY) is not None:
            resource.time_stamp = document[mc.TIME_STAMP_KEY]
        return obj

    def descriptor(self, class_name):
        """
        @retval ClassDescriptor for class_name, from the class cache or the
            class registry
        """
        descriptor = self.class_cache.get(class_name)
        if descriptor is None:
            cls = self.registry.lookup(class_name)
            if cls is None:
                raise FormatError("Unable to locate class '%s'" % class_name)
            descriptor = self.class_cache[class_name] = self.registry.describe(cls)
        return descriptor

    def _include_proxy_attributes(self, options):
        return options.get(mc.OPTION_PROXY_ATTRIBUTES, self.include_attributes_for_proxy_references)

    def _build_object(self, document, reference, resource_set, options, resource):
        if not isinstance(document, dict):
            raise FormatError('Expected a document, received %r' % (document,))
        class_name = document.get(mc.CLASS_KEY)
        if class_name is None:
            if reference is None:
                raise FormatError('Document %r carries no %s' % (document.get(mc.ID_KEY), mc.CLASS_KEY))
            class_name = reflect.qual(reference.type)
        descriptor = self.descriptor(class_name)

        if mc.PROXY_KEY in document:
            return self._build_proxy(descriptor, document, resource_set, options)

        obj = descriptor.new_instance()
        for field in descriptor.fields():
            if field.name not in document:
                continue
            data = document[field.name]
            if isinstance(field, Attribute):
                value = self._build_attribute(field, data)
            elif field.many:
                value = [self._build_object(d, field, resource_set, options, resource) for d in data]
            elif data is None:
                value = None
            else:
                value = self._build_object(data, field, resource_set, options, resource)
            descriptor.set(obj, field, value)

        if resource is not None and document.get(mc.EXTRINSIC_ID_KEY) is not None:
            resource.set_id(obj, document[mc.EXTRINSIC_ID_KEY])
        return obj

    def _build_proxy(self, descriptor, document, resource_set, options):
        proxy = descriptor.new_proxy(Location.parse(document[mc.PROXY_KEY]), resource_set)
        if self._include_proxy_attributes(options):
            for field in descriptor.attributes():
                if field.name in document:
                    descriptor.set(proxy, field, self._build_attribute(field, document[field.name]))
            proxy._proxy.populated = True
        return proxy

    def _build_attribute(self, field, data):
        if field.many:
            return [self._build_value(field, d) for d in data]
        return self._build_value(field, data)

    def _build_value(self, field, data):
        if field.native or data is None:
            return data
        return self.converter_service.from_store(field.type, data)


class BuilderFactory(object):
    """
    @brief Creates the builders used by the handler. Replace it to customize
    how data objects map to documents.
    """

    def create_document_builder(self, converter_service, identifier_policy,
                                serialize_default_attribute_values=False, track_timestamps=False):
        return DocumentBuilder(converter_service, identifier_policy,
                               serialize_default_attribute_values, track_timestamps)

    def create_object_builder(self, converter_service, registry,
                              include_attributes_for_proxy_references=False, class_cache=None):
        return ObjectBuilder(converter_service, registry,
                             include_attributes_for_proxy_references, class_cache)
