#!/usr/bin/env python
"""
@file mongomap/data/resource.py
@brief Resources holding persisted root objects, and the resource set
caching them by normalized location

The resource set keeps a map from normalized location to resource. The map
is kept consistent by explicit notifications: adding or removing a resource
and changing the location of a resource call back into the set before
returning. Lookups are O(1) whatever textual form the location takes, as
long as it normalizes to the key.

A resource set is a single session: it is not locked, callers serialize
access to it.
"""

from mongomap.core import mapinit
from mongomap.core.exception import ConfigurationError, IllegalStateError
from mongomap.data.dataobject import DataObject, NotifyingList, describe
from mongomap.data.location import Location, LocationConverter

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

CONF = mapinit.config(__name__)


def merge_options(defaults, options):
    merged = dict(defaults or {})
    merged.update(options or {})
    return merged


class ResourceContents(NotifyingList):
    """
    Root objects of a resource. An object is held by one resource at a time
    and loses its location when removed.
    """

    def __init__(self, resource):
        self.resource = resource
        NotifyingList.__init__(self)

    def _added(self, obj):
        if not isinstance(obj, DataObject):
            raise TypeError('Resources hold data objects, received %r' % (obj,))
        previous = obj._resource
        if previous is not None and previous is not self.resource:
            previous.contents.remove(obj)
        obj._resource = self.resource
        self.resource._contents_changed()

    def _removed(self, obj):
        if obj._resource is self.resource:
            obj._resource = None
        self.resource.forget_id(obj)
        self.resource._contents_changed()


class Resource(object):
    """
    @brief In memory holder of the root objects stored at a location.
    """

    def __init__(self, location=None, handler=None):
        self._location = Location.parse(location) if location is not None else None
        self.handler = handler
        self.resource_set = None
        self.contents = ResourceContents(self)
        self.loaded = False
        self.loading = False
        self.modified = False
        self.errors = []
        self.time_stamp = None
        self._ids = {}

    def __repr__(self):
        return '<Resource %s loaded=%s roots=%d>' % (self._location, self.loaded, len(self.contents))

    def _get_location(self):
        return self._location

    def _set_location(self, location):
        if location is not None:
            location = Location.parse(location)
        old = self._location
        self._location = location
        if self.resource_set is not None and old != location:
            self.resource_set._location_changed(self, old, location)

    location = property(_get_location, _set_location)

    def _contents_changed(self):
        if not self.loading:
            self.loaded = True
            self.modified = True

    def get_handler(self):
        if self.handler is None and self.resource_set is not None and self._location is not None:
            self.handler = self.resource_set.get_handler(self._location)
        if self.handler is None:
            raise ConfigurationError("No handler for resource at '%s'" % self._location)
        return self.handler

    def load(self, options=None):
        """
        @brief Loads the contents from the store, unless already loaded
        """
        if self.loaded:
            return
        handler = self.get_handler()
        if self.resource_set is not None:
            options = merge_options(self.resource_set.load_options, options)
        self.loading = True
        try:
            handler.load(self, options or {})
        except Exception as ex:
            self.errors.append(ex)
            raise
        finally:
            self.loading = False
        self.loaded = True
        self.modified = False

    def set_loaded_contents(self, objects):
        """
        @brief Replaces the contents with objects built from the store
        """
        self.loading = True
        try:
            self.contents.clear()
            self.contents.extend(objects)
        finally:
            self.loading = False
        self.loaded = True
        self.modified = False

    def save(self, options=None):
        handler = self.get_handler()
        if self.resource_set is not None:
            options = merge_options(self.resource_set.save_options, options)
        handler.save(self, options or {})
        self.modified = False

    def delete(self, options=None):
        """
        @brief Removes the stored document, unloads and leaves the resource set
        """
        self.get_handler().delete(self._location, options or {})
        self.unload()
        if self.resource_set is not None:
            self.resource_set.resources.remove(self)

    def unload(self):
        self.loading = True
        try:
            self.contents.clear()
        finally:
            self.loading = False
        self._ids.clear()
        self.loaded = False
        self.modified = False

    def get_id(self, obj):
        """
        @retval the extrinsic id assigned to obj, or None
        """
        entry = self._ids.get(id(obj))
        if entry is not None and entry[0] is obj:
            return entry[1]
        return None

    def set_id(self, obj, extrinsic_id):
        if extrinsic_id is None:
            self.forget_id(obj)
        else:
            self._ids[id(obj)] = (obj, extrinsic_id)

    def forget_id(self, obj):
        self._ids.pop(id(obj), None)

    def fragment(self, obj):
        """
        @brief Path of obj within this resource: the root index followed by
        the containment fields leading to it, e.g. /0/children.2/address
        """
        steps = []
        while obj._container is not None:
            parent, name = obj._container
            field = describe(parent).field(name)
            if field.many:
                steps.append('%s.%d' % (name, field.get_raw(parent).index(obj)))
            else:
                steps.append(name)
            obj = parent
        if obj._resource is not self:
            raise IllegalStateError('%r is not held by %r' % (obj, self))
        steps.append(str(self.contents.index(obj)))
        return '/' + '/'.join(reversed(steps))

    def get_object(self, fragment):
        """
        @retval the object addressed by fragment, root 0 for an empty
            fragment, or None
        """
        if not fragment:
            return self.contents[0] if self.contents else None
        steps = fragment.strip('/').split('/')
        try:
            obj = self.contents[int(steps[0])]
        except (ValueError, IndexError):
            return None
        for step in steps[1:]:
            name, _, index = step.partition('.')
            field = describe(obj).field(name)
            if field is None:
                return None
            obj = field.get_raw(obj)
            if index:
                try:
                    obj = obj[int(index)]
                except (ValueError, IndexError):
                    return None
            if obj is None:
                return None
        return obj


class ResourceList(NotifyingList):
    """
    Resources of a resource set. Membership changes update the cache.
    """

    def __init__(self, resource_set):
        self.resource_set = resource_set
        NotifyingList.__init__(self)

    def _added(self, resource):
        if not isinstance(resource, Resource):
            raise TypeError('Expected a Resource, received %r' % (resource,))
        previous = resource.resource_set
        if previous is self.resource_set:
            raise ValueError('%r is already held by this resource set' % (resource,))
        if previous is not None:
            previous.resources.remove(resource)
        self.resource_set._resource_added(resource)

    def _removed(self, resource):
        self.resource_set._resource_removed(resource)


class ResourceSet(object):
    """
    @brief Resource cache and entry point for loading, saving, deleting and
    checking the existence of stored objects.
    @param location_converter normalizes cache keys
    @param handlers location handlers, tried in order
    @param delegates consulted on a cache miss before creating a resource;
        anything with get_resource(location, load_on_demand)
    """

    def __init__(self, location_converter=None, handlers=None, delegates=None):
        self.location_converter = location_converter or LocationConverter.from_config()
        self.handlers = list(handlers or ())
        self.delegates = list(delegates or ())
        self.load_options = dict(CONF.getValue('load_options', {}))
        self.save_options = dict(CONF.getValue('save_options', {}))
        self._cache = {}
        self.resources = ResourceList(self)

    def normalize(self, location):
        return self.location_converter.normalize(location)

    def _resource_added(self, resource):
        resource.resource_set = self
        if resource.location is not None:
            self._cache[self.normalize(resource.location)] = resource

    def _resource_removed(self, resource):
        if resource.location is not None:
            self._evict(self.normalize(resource.location), resource)
        resource.resource_set = None

    def _location_changed(self, resource, old, new):
        old_key = self.normalize(old) if old is not None else None
        new_key = self.normalize(new) if new is not None else None
        if old_key == new_key:
            return
        # new key first, a lookup never misses both
        if new_key is not None:
            self._cache[new_key] = resource
        if old_key is not None:
            self._evict(old_key, resource)
        log.debug('Rekeyed resource %s -> %s', old_key, new_key)

    def _evict(self, key, resource):
        if self._cache.get(key) is resource:
            del self._cache[key]

    def get_cached_resource(self, location):
        return self._cache.get(self.normalize(location))

    def get_handler(self, location):
        """
        @retval the first handler accepting the location, or None
        """
        for handler in self.handlers:
            if handler.can_handle(location):
                return handler
        return None

    def get_resource(self, location, load_on_demand=True):
        """
        @brief The resource at location, from the cache, the delegates or, if
        load_on_demand, created and loaded from the store
        @retval Resource, or None when not cached and not load_on_demand
        @throws NotFoundError if load_on_demand and nothing is stored there
        @throws ConfigurationError if no handler accepts the location
        """
        location = Location.parse(location).trim_fragment()
        normalized = self.normalize(location)
        resource = self._cache.get(normalized)

        if resource is not None:
            if load_on_demand and not resource.loaded:
                resource.load()
            return resource

        resource = self._delegated_get_resource(location, load_on_demand)
        if resource is None and load_on_demand:
            resource = self.create_resource(location)
            resource.load()
        return resource

    def _delegated_get_resource(self, location, load_on_demand):
        for delegate in self.delegates:
            resource = delegate.get_resource(location, load_on_demand)
            if resource is not None:
                return resource
        return None

    def create_resource(self, location):
        """
        @brief Adds a new, empty resource for location
        @throws ConfigurationError if no handler accepts the location
        """
        location = Location.parse(location)
        handler = self.get_handler(location)
        if handler is None:
            raise ConfigurationError("Cannot create a resource for '%s'; a registered handler is needed" % location)
        resource = Resource(location, handler)
        self.resources.append(resource)
        return resource

    def get_object(self, location, load_on_demand=True):
        """
        @retval the object addressed by the location and its fragment
        """
        location = Location.parse(location)
        resource = self.get_resource(location.trim_fragment(), load_on_demand)
        if resource is None:
            return None
        return resource.get_object(location.fragment)

    def delete(self, location, options=None):
        """
        @brief Removes the document stored at location and evicts the
        resource cached for it
        """
        location = Location.parse(location)
        handler = self.get_handler(location)
        if handler is None:
            raise ConfigurationError("No handler for '%s'" % location)
        handler.delete(location, merge_options(self.save_options, options))
        resource = self.get_cached_resource(location.trim_fragment())
        if resource is not None:
            resource.unload()
            self.resources.remove(resource)

    def exists(self, location, options=None):
        location = Location.parse(location)
        handler = self.get_handler(location)
        if handler is None:
            return False
        return handler.exists(location, merge_options(self.load_options, options))
