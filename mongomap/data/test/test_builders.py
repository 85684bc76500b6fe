#!/usr/bin/env python

"""
@file mongomap/data/test/test_builders.py
@test DocumentBuilder and ObjectBuilder
"""

import datetime
import decimal

from twisted.trial import unittest

from bson.decimal128 import Decimal128

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

from mongomap.core import mapconst as mc
from mongomap.core.exception import FormatError
from mongomap.data.builders import BuilderFactory, DocumentBuilder, ObjectBuilder
from mongomap.data.converter import ConverterService
from mongomap.data.dataobject import describe, registry
from mongomap.data.identifier import IdentifierPolicy
from mongomap.data.location import Location
from mongomap.data.resource import Resource
from mongomap.data.test.model import Address, Color, Person, PrimitiveTypes, Tag, Team

PERSON = 'mongomap.data.test.model.Person'


class BuilderTestCase(unittest.TestCase):

    def setUp(self):
        self.converters = ConverterService()
        self.documents = DocumentBuilder(self.converters, IdentifierPolicy())
        self.objects = ObjectBuilder(self.converters, registry)

    def held(self, obj, location):
        resource = Resource(location)
        resource.contents.append(obj)
        return resource


class DocumentBuilderTest(BuilderTestCase):

    def test_defaults_elided(self):
        document = self.documents.build(Person(name='Ada', age=0))
        self.assertEqual(document, {mc.CLASS_KEY: PERSON, 'name': 'Ada'})

    def test_serialize_defaults(self):
        document = self.documents.build(PrimitiveTypes(),
                                        {mc.OPTION_SERIALIZE_DEFAULT_ATTRIBUTE_VALUES: True})
        for field in describe(PrimitiveTypes).attributes():
            self.assertIn(field.name, document)
        self.assertEqual(document['int32'], 0)
        self.assertEqual(document['raw'], b'\x00')
        self.assertEqual(document['text'], None)

    def test_id_from_location(self):
        document = self.documents.build(Person(name='Ada'), None,
                                        Location.parse('store://localhost/app/people/abc123'))
        self.assertEqual(document[mc.ID_KEY], 'abc123')
        self.assertEqual(list(document)[:2], [mc.ID_KEY, mc.CLASS_KEY])

    def test_id_from_resource(self):
        ada = Person(name='Ada')
        self.held(ada, 'store://localhost/app/people/abc123')
        self.assertEqual(self.documents.build(ada)[mc.ID_KEY], 'abc123')

    def test_converted_values(self):
        p = Person(color=Color.GREEN, birthday=datetime.date(1815, 12, 10),
                   balance=decimal.Decimal('1.25'))
        document = self.documents.build(p)
        self.assertEqual(document['color'], 'GREEN')
        self.assertEqual(document['birthday'], '1815-12-10')
        self.assertEqual(document['balance'], Decimal128('1.25'))

    def test_embedded(self):
        p = Person(name='Ada', address=Address(city='London'), tags=[Tag(label='math')])
        document = self.documents.build(p)
        self.assertEqual(document['address'], {mc.CLASS_KEY: 'mongomap.data.test.model.Address',
                                               'city': 'London'})
        self.assertEqual(document['tags'], [{mc.CLASS_KEY: 'mongomap.data.test.model.Tag',
                                             'label': 'math'}])

    def test_cross_reference(self):
        william = Person(name='William', age=40)
        self.held(william, 'store://localhost/app/people/w1')
        document = self.documents.build(Person(name='Ada', spouse=william))
        self.assertEqual(document['spouse'], {mc.PROXY_KEY: 'store://localhost/app/people/w1#/0',
                                              mc.CLASS_KEY: PERSON,
                                              'name': 'William', 'age': 40})

    def test_reference_to_contained_object(self):
        team = Team(members=[Person(name='Ada'), Person(name='Grace')])
        self.held(team, 'store://localhost/app/teams/t1')
        document = self.documents.build(Team(lead=team.members[1]))
        self.assertEqual(document['lead'][mc.PROXY_KEY], 'store://localhost/app/teams/t1#/0/members.1')

    def test_reference_without_location(self):
        self.assertRaises(FormatError, self.documents.build,
                          Person(name='Ada', spouse=Person(name='William')))

    def test_proxy_copied_verbatim(self):
        proxy = describe(Person).new_proxy(Location.parse('store://localhost/app/people/w1#/0'))
        document = self.documents.build(Person(friends=[proxy]))
        self.assertEqual(document['friends'], [{mc.PROXY_KEY: 'store://localhost/app/people/w1#/0',
                                                mc.CLASS_KEY: PERSON}])
        self.assertEqual(proxy._proxy.resolved, None)

    def test_extrinsic_id(self):
        ada = Person(name='Ada')
        resource = self.held(ada, 'store://localhost/app/people/abc')
        resource.set_id(ada, 'ada-1')
        self.assertEqual(self.documents.build(ada)[mc.EXTRINSIC_ID_KEY], 'ada-1')

    def test_time_stamp(self):
        builder = DocumentBuilder(self.converters, IdentifierPolicy(), track_timestamps=True)
        document = builder.build(Person(name='Ada'))
        self.assertTrue(isinstance(document[mc.TIME_STAMP_KEY], datetime.datetime))


class ObjectBuilderTest(BuilderTestCase):

    def test_round_trip_with_defaults(self):
        when = datetime.datetime(2010, 12, 16, 10, 30, 0)
        original = PrimitiveTypes(text='hello', int64=2 ** 40, flag=True, real=2.5,
                                  when=when, blob=b'\x01\x02')
        document = self.documents.build(original, {mc.OPTION_SERIALIZE_DEFAULT_ATTRIBUTE_VALUES: True})
        rebuilt = self.objects.build(document)
        self.assertTrue(original.equals(rebuilt))
        self.assertEqual(rebuilt.when, when)

    def test_round_trip_person(self):
        original = Person(name='Ada', email='ada@example.org', color=Color.BLUE,
                          birthday=datetime.date(1815, 12, 10), balance=decimal.Decimal('1.25'),
                          nicknames=['Countess'], address=Address(street='St James', city='London'),
                          tags=[Tag(label='math'), Tag(label='poetry')])
        rebuilt = self.objects.build(self.documents.build(original))
        self.assertTrue(isinstance(rebuilt, Person))
        self.assertTrue(original.equals(rebuilt))
        self.assertIs(rebuilt.address.container, rebuilt)
        self.assertEqual(rebuilt.age, 0)

    def test_proxy(self):
        document = {mc.CLASS_KEY: PERSON, 'name': 'Ada',
                    'spouse': {mc.PROXY_KEY: 'store://localhost/app/people/w1#/0',
                               mc.CLASS_KEY: PERSON, 'name': 'William'}}
        ada = self.objects.build(document)
        spouse = Person.spouse.get_raw(ada)
        self.assertTrue(spouse.is_proxy())
        self.assertEqual(str(spouse.location), 'store://localhost/app/people/w1#/0')
        self.assertFalse(spouse._proxy.populated)
        self.assertFalse(Person.name.is_set(spouse))

    def test_populated_proxy(self):
        document = {mc.CLASS_KEY: PERSON,
                    'friends': [{mc.PROXY_KEY: 'store://localhost/app/people/w1#/0',
                                 mc.CLASS_KEY: PERSON, 'name': 'William', 'color': 'GREEN'}]}
        ada = self.objects.build(document, options={mc.OPTION_PROXY_ATTRIBUTES: True})
        friend = ada.friends[0]
        self.assertTrue(friend.is_proxy())
        self.assertEqual(friend.name, 'William')
        self.assertEqual(friend.color, Color.GREEN)

    def test_unknown_class(self):
        self.assertRaises(FormatError, self.objects.build, {mc.CLASS_KEY: 'no.such.Class'})
        self.assertRaises(FormatError, self.objects.build, {'name': 'Ada'})

    def test_class_cache(self):
        cache = {}
        builder = ObjectBuilder(self.converters, registry, class_cache=cache)
        builder.build({mc.CLASS_KEY: PERSON})
        self.assertIs(cache[PERSON].cls, Person)

    def test_missing_class_of_embedded(self):
        # the declared reference type is assumed
        ada = self.objects.build({mc.CLASS_KEY: PERSON, 'address': {'city': 'London'}})
        self.assertTrue(isinstance(ada.address, Address))

    def test_extrinsic_id_and_time_stamp(self):
        resource = Resource('store://localhost/app/people/abc')
        stamp = datetime.datetime(2010, 12, 16)
        ada = self.objects.build({mc.CLASS_KEY: PERSON, mc.EXTRINSIC_ID_KEY: 'ada-1',
                                  mc.TIME_STAMP_KEY: stamp}, resource=resource)
        self.assertEqual(resource.get_id(ada), 'ada-1')
        self.assertEqual(resource.time_stamp, stamp)


class BuilderFactoryTest(unittest.TestCase):

    def test_create(self):
        factory = BuilderFactory()
        converters = ConverterService()
        documents = factory.create_document_builder(converters, IdentifierPolicy(), True)
        self.assertTrue(documents.serialize_default_attribute_values)
        objects = factory.create_object_builder(converters, registry, True)
        self.assertTrue(objects.include_attributes_for_proxy_references)
