#!/usr/bin/env python
"""
@file mongomap/data/converter.py
@brief Registry of converters between attribute values of non native types
and their store representation
"""

import datetime
import decimal
import enum

from zope.interface import Interface, implementer

from bson.decimal128 import Decimal128

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)


class IValueConverter(Interface):
    """
    Converts values of one or more attribute types to a store representation
    and back.
    """

    def can_convert(type):
        """
        @retval True if this converter handles attribute values of type
        """

    def to_store(type, value):
        """
        @retval store native representation of value
        """

    def from_store(type, data):
        """
        @retval instance of type represented by data
        """


@implementer(IValueConverter)
class EnumConverter(object):
    """
    Stores enum members by name.
    """

    def can_convert(self, type):
        return issubclass(type, enum.Enum)

    def to_store(self, type, value):
        return value.name

    def from_store(self, type, data):
        return type[data]


@implementer(IValueConverter)
class DecimalConverter(object):

    def can_convert(self, type):
        return issubclass(type, decimal.Decimal)

    def to_store(self, type, value):
        return Decimal128(value)

    def from_store(self, type, data):
        if isinstance(data, Decimal128):
            return data.to_decimal()
        return decimal.Decimal(data)


@implementer(IValueConverter)
class DateConverter(object):
    """
    Dates without time are stored as ISO strings; the store only knows
    datetimes.
    """

    def can_convert(self, type):
        return type is datetime.date

    def to_store(self, type, value):
        return value.isoformat()

    def from_store(self, type, data):
        return datetime.date.fromisoformat(data)


@implementer(IValueConverter)
class StringConverter(object):
    """
    Fallback: the string form of the value, decoded by calling the type with
    that string. Fits uuid.UUID and most value types.
    """

    def can_convert(self, type):
        return True

    def to_store(self, type, value):
        return str(value)

    def from_store(self, type, data):
        return type(str(data))


class ConverterService(object):
    """
    @brief Converters are tried most recently registered first; the string
    converter is the last resort.
    """

    def __init__(self):
        self._converters = []
        self._by_type = {}
        self.default = StringConverter()
        self.register(DateConverter())
        self.register(DecimalConverter())
        self.register(EnumConverter())

    def __repr__(self):
        return '<ConverterService %s>' % ', '.join(type(c).__name__ for c in self._converters)

    def register(self, converter):
        assert IValueConverter.providedBy(converter), 'Converters must provide IValueConverter'
        self._converters.insert(0, converter)
        self._by_type.clear()

    def converter(self, type):
        converter = self._by_type.get(type)
        if converter is None:
            for candidate in self._converters:
                if candidate.can_convert(type):
                    converter = candidate
                    break
            else:
                converter = self.default
            self._by_type[type] = converter
        return converter

    def to_store(self, type, value):
        if value is None:
            return None
        return self.converter(type).to_store(type, value)

    def from_store(self, type, data):
        if data is None:
            return None
        return self.converter(type).from_store(type, data)
