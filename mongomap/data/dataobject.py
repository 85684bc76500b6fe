#!/usr/bin/env python
"""
@file mongomap/data/dataobject.py
@brief module for mongomap structured data object definitions

Data objects are containers of typed attributes and references described by
runtime metadata. The builders never touch instance state directly; they go
through a ClassDescriptor, which enumerates the declared fields of a class
and gets and sets their raw values.

A reference to an object that has not been loaded yet holds a proxy: an
instance of the target class carrying a ProxyState with the target's
location. Reading a reference field of a proxy resolves it. Reading an
attribute of a proxy resolves it too, unless the proxy was populated with
attribute values at load time.
"""

import datetime

from twisted.python import reflect

from mongomap.core.exception import FormatError, NotFoundError

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

# Value types written to the store as they are. Everything else goes
# through the converter service.
NATIVE_TYPES = (str, int, bool, float, datetime.datetime, bytes)

_UNSET = object()

# Names of DataObject members and internal state, unusable as field names
RESERVED_FIELD_NAMES = frozenset(['proxy', 'resource', 'container', 'location',
                                  'resolve', 'is_proxy', 'equals'])


class NotifyingList(list):
    """
    @brief List calling _added/_removed for every element that enters or
    leaves it. Subclasses use the hooks to keep ownership and caches
    consistent.
    """

    def __init__(self, items=()):
        list.__init__(self)
        self.extend(items)

    def _added(self, item):
        pass

    def _removed(self, item):
        pass

    def append(self, item):
        self._added(item)
        list.append(self, item)

    def insert(self, index, item):
        self._added(item)
        list.insert(self, index, item)

    def extend(self, items):
        for item in list(items):
            self.append(item)

    def __iadd__(self, items):
        self.extend(items)
        return self

    def __setitem__(self, index, value):
        if isinstance(index, slice):
            old = list.__getitem__(self, index)
            value = list(value)
            for item in old:
                self._removed(item)
            for item in value:
                self._added(item)
        else:
            self._removed(list.__getitem__(self, index))
            self._added(value)
        list.__setitem__(self, index, value)

    def __delitem__(self, index):
        old = list.__getitem__(self, index)
        list.__delitem__(self, index)
        if isinstance(index, slice):
            for item in old:
                self._removed(item)
        else:
            self._removed(old)

    def remove(self, item):
        index = self.index(item)
        del self[index]

    def pop(self, index=-1):
        item = list.__getitem__(self, index)
        del self[index]
        return item

    def clear(self):
        del self[:]

    def index(self, item, *args):
        # identity, data objects do not define value equality
        for i, element in enumerate(self):
            if element is item:
                return i
        raise ValueError('%r is not in list' % (item,))


class ReferenceList(NotifyingList):
    """
    Value of a many-valued reference. Type checks elements and, for
    containment references, makes the owner the container of each element.
    """

    def __init__(self, owner, field, items=()):
        self.owner = owner
        self.field = field
        NotifyingList.__init__(self, items)

    def _added(self, item):
        self.field.check(item)
        if self.field.containment:
            item._container = (self.owner, self.field.name)

    def _removed(self, item):
        if self.field.containment and item._container is not None \
                and item._container[0] is self.owner:
            item._container = None


class Field(object):
    """
    @brief Base class of the descriptors declaring the fields of a data
    object. The metaclass assigns the name.
    """
    many = False

    def __init__(self):
        self.name = None
        self.slot = None

    def _set_name(self, name):
        self.name = name
        self.slot = '_' + name

    @property
    def default(self):
        return None

    def default_value(self):
        return [] if self.many else self.default

    def get_raw(self, inst):
        """
        @brief The stored value, never resolving proxies.
        """
        value = inst.__dict__.get(self.slot, _UNSET)
        if value is _UNSET:
            if self.many:
                value = self._new_list(inst, ())
                inst.__dict__[self.slot] = value
                return value
            return self.default
        return value

    def set_raw(self, inst, value):
        if self.many:
            if value is None:
                value = ()
            if not isinstance(value, (list, tuple)):
                raise TypeError("Many valued field %s requires a list, received %s" % (self.name, type(value)))
            items = list(value)
            old = inst.__dict__.get(self.slot)
            if old is not None:
                old.clear()
            value = self._new_list(inst, items)
        else:
            if value is not None:
                value = self.check(value)
            self._replace(inst, inst.__dict__.get(self.slot), value)
        inst.__dict__[self.slot] = value

    def is_set(self, inst):
        value = inst.__dict__.get(self.slot, _UNSET)
        if value is _UNSET:
            return False
        if self.many:
            return len(value) > 0
        return True

    def unset(self, inst):
        if self.many:
            self.get_raw(inst).clear()
        else:
            self._replace(inst, inst.__dict__.get(self.slot), None)
        inst.__dict__.pop(self.slot, None)

    def _new_list(self, inst, items):
        return list(items)

    def _replace(self, inst, old, new):
        pass

    def check(self, value):
        return value

    def __set__(self, inst, value):
        proxy = inst._proxy
        if proxy is not None:
            setattr(proxy.resolve(), self.name, value)
            return
        self.set_raw(inst, value)

    def __delete__(self, inst):
        self.unset(inst)


class Attribute(Field):
    """
    @brief Descriptor for typed data object attributes.
    @param type the value type; NATIVE_TYPES are stored as they are
    @param default value reported while the attribute is unset
    @param many the attribute holds a list of values
    @param id the attribute identifies the object and can serve as _id
    """

    def __init__(self, type, default=None, many=False, id=False):
        Field.__init__(self)
        self.type = type
        self._default = default
        self.many = many
        self.id = id
        if many and default is not None:
            raise ValueError('Many valued attributes default to the empty list')

    @property
    def default(self):
        return self._default

    @property
    def native(self):
        return self.type in NATIVE_TYPES

    def check(self, value):
        if self.type is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        if not isinstance(value, self.type):
            raise TypeError("Error setting typed attribute %s \n Attribute must be of class %s \n Received Value of Class: %s" % (self.name, self.type, value.__class__))
        return value

    def _new_list(self, inst, items):
        return [self.check(item) for item in items]

    def __get__(self, inst, cls):
        if inst is None:
            return self
        proxy = inst._proxy
        if proxy is not None:
            if proxy.resolved is None and proxy.populated:
                return self.get_raw(inst)
            return getattr(proxy.resolve(), self.name)
        return self.get_raw(inst)


class Reference(Field):
    """
    @brief Descriptor for references to other data objects.
    @param type the target class, or its registered name for forward
        declarations
    @param many ordered multi-valued reference
    @param containment the referenced objects are owned by the referencing
        object and are embedded in its document
    """

    def __init__(self, type, many=False, containment=False):
        Field.__init__(self)
        self._type = type
        self.many = many
        self.containment = containment

    @property
    def type(self):
        if isinstance(self._type, str):
            cls = registry.lookup(self._type)
            if cls is None:
                raise FormatError('Reference %s names unknown class %s' % (self.name, self._type))
            self._type = cls
        return self._type

    def embeds(self, value):
        return self.containment or type(value).__embedded__

    def check(self, value):
        if not isinstance(value, self.type):
            raise TypeError("Reference %s must refer to a %s, received %s" % (self.name, self.type, value.__class__))
        return value

    def _new_list(self, inst, items):
        return ReferenceList(inst, self, items)

    def _replace(self, inst, old, new):
        if not self.containment:
            return
        if old is not None and old is not new and old._container is not None \
                and old._container[0] is inst:
            old._container = None
        if new is not None:
            new._container = (inst, self.name)

    def __get__(self, inst, cls):
        if inst is None:
            return self
        proxy = inst._proxy
        if proxy is not None:
            return getattr(proxy.resolve(), self.name)
        return self.get_raw(inst)


class ProxyState(object):
    """
    @brief Placeholder state of an unresolved object: the target location,
    the resource set that resolves it and, after resolution, the target.
    """

    def __init__(self, location, resource_set=None, populated=False):
        self.location = location
        self.resource_set = resource_set
        self.populated = populated
        self.resolved = None

    def resolve(self):
        if self.resolved is None:
            if self.resource_set is None:
                raise NotFoundError('Cannot resolve proxy %s outside of a resource set' % self.location)
            log.debug('Resolving proxy %s', self.location)
            target = self.resource_set.get_object(self.location, True)
            if target is None:
                raise NotFoundError('Proxy %s does not resolve to an object' % self.location)
            self.resolved = target
        return self.resolved


class ClassDescriptor(object):
    """
    @brief Reflective access to a data object class: field enumeration,
    raw get/set and instantiation.
    """

    def __init__(self, cls):
        self.cls = cls
        self.name = reflect.qual(cls)
        self._by_name = dict((f.name, f) for f in cls._fields)

    def __repr__(self):
        return '<ClassDescriptor %s>' % self.name

    def fields(self):
        return self.cls._fields

    def field(self, name):
        return self._by_name.get(name)

    def attributes(self):
        return [f for f in self.cls._fields if isinstance(f, Attribute)]

    def references(self):
        return [f for f in self.cls._fields if isinstance(f, Reference)]

    @property
    def id_attribute(self):
        for field in self.cls._fields:
            if isinstance(field, Attribute) and field.id:
                return field
        return None

    def get(self, obj, field):
        return field.get_raw(obj)

    def set(self, obj, field, value):
        field.set_raw(obj, value)

    def is_set(self, obj, field):
        return field.is_set(obj)

    def new_instance(self):
        return self.cls()

    def new_proxy(self, location, resource_set=None):
        obj = self.cls()
        obj._proxy = ProxyState(location, resource_set)
        return obj


class ClassRegistry(object):
    """
    @brief Maps class names to data object classes. Classes register under
    their fully qualified name; unknown names fall back to importing them.
    """

    def __init__(self):
        self._classes = {}
        self._short_names = {}
        self._descriptors = {}

    def register(self, cls, name=None):
        self._classes[name or reflect.qual(cls)] = cls
        self._short_names[cls.__name__] = cls

    def lookup(self, name):
        cls = self._classes.get(name)
        if cls is not None:
            return cls
        if '.' not in name:
            return self._short_names.get(name)
        try:
            cls = reflect.namedAny(name)
        except (reflect.InvalidName, AttributeError):
            log.debug('Class %s not found', name)
            return None
        if not (isinstance(cls, type) and issubclass(cls, DataObject)):
            return None
        self._classes[name] = cls
        return cls

    def describe(self, cls):
        descriptor = self._descriptors.get(cls)
        if descriptor is None:
            descriptor = self._descriptors[cls] = ClassDescriptor(cls)
        return descriptor


registry = ClassRegistry()


class DataObjectType(type):
    """
    @brief Metaclass for all Data Objects. Names the field descriptors,
    collects them in declaration order, base classes first, and registers
    the class with the class registry.
    """

    def __new__(mcs, name, bases, dict):
        fields = {}
        for base in reversed(bases):
            for field in getattr(base, '_fields', ()):
                fields[field.name] = field

        for key, value in dict.items():
            if isinstance(value, Field):
                if key.startswith('_') or key in RESERVED_FIELD_NAMES:
                    raise TypeError("%s cannot declare a field named %s" % (name, key))
                value._set_name(key)
                fields.pop(key, None)
                fields[key] = value

        dict['_fields'] = tuple(fields.values())
        cls = type.__new__(mcs, name, bases, dict)
        registry.register(cls)
        return cls


class DataObject(metaclass=DataObjectType):
    """
    @brief Base class for all data objects. Subclasses declare Attribute and
    Reference fields and must be constructible without arguments.
    """

    # Objects of an embedded class are stored inside the document of the
    # object referencing them, even over non containment references.
    __embedded__ = False

    def __init__(self, **kwargs):
        self._proxy = None
        self._resource = None
        self._container = None
        for key, value in kwargs.items():
            if not isinstance(getattr(type(self), key, None), Field):
                raise TypeError('%s has no field %s' % (type(self).__name__, key))
            setattr(self, key, value)

    def __repr__(self):
        if self._proxy is not None:
            return '<%s proxy %s>' % (type(self).__name__, self._proxy.location)
        return '<%s %s>' % (type(self).__name__, ', '.join(
            '%s=%r' % (f.name, f.get_raw(self)) for f in self._fields
            if isinstance(f, Attribute) and f.is_set(self)))

    def is_proxy(self):
        return self._proxy is not None

    def resolve(self):
        """
        @retval the object a proxy stands for, or self
        """
        if self._proxy is None:
            return self
        return self._proxy.resolve()

    @property
    def container(self):
        if self._container is None:
            return None
        return self._container[0]

    @property
    def resource(self):
        obj = self
        while obj._container is not None:
            obj = obj._container[0]
        return obj._resource

    @property
    def location(self):
        """
        @brief Location of the object: the proxy location, or the location
        of its resource with the fragment addressing it. None while the
        object is not held by a resource with a location.
        """
        if self._proxy is not None:
            return self._proxy.location
        resource = self.resource
        if resource is None or resource.location is None:
            return None
        return resource.location.with_fragment(resource.fragment(self))

    def equals(self, other):
        """
        Compares field values. Contained objects are compared by value,
        cross references by identity or location.
        """
        if type(self) is not type(other):
            return False
        for field in self._fields:
            mine = field.get_raw(self)
            theirs = field.get_raw(other)
            if isinstance(field, Attribute):
                if field.many:
                    mine, theirs = list(mine), list(theirs)
                if mine != theirs:
                    return False
                continue
            if not field.many:
                mine, theirs = [mine], [theirs]
            if len(mine) != len(theirs):
                return False
            for a, b in zip(mine, theirs):
                if a is None or b is None:
                    if a is not b:
                        return False
                elif field.embeds(a):
                    if not a.equals(b):
                        return False
                elif a is not b and a.location != b.location:
                    return False
        return True


def describe(obj_or_cls):
    cls = obj_or_cls if isinstance(obj_or_cls, type) else type(obj_or_cls)
    return registry.describe(cls)
