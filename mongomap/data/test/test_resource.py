#!/usr/bin/env python

"""
@file mongomap/data/test/test_resource.py
@test Resource contents and the location keyed cache of ResourceSet
"""

from twisted.trial import unittest

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

from mongomap.core.exception import ConfigurationError, FormatError, IllegalStateError
from mongomap.data.handler import create_resource_set
from mongomap.data.location import Location, LocationConverter
from mongomap.data.resource import Resource, ResourceSet, merge_options
from mongomap.data.store import MemoryLocator
from mongomap.data.test.model import Address, Person, Team

LOCATION = 'store://localhost/app/people/abc123'


class ResourceTest(unittest.TestCase):

    def test_contents_owned_by_one_resource(self):
        first = Resource('store://localhost/app/people/a')
        second = Resource('store://localhost/app/people/b')
        ada = Person(name='Ada')
        first.contents.append(ada)
        self.assertIs(ada.resource, first)
        second.contents.append(ada)
        self.assertIs(ada.resource, second)
        self.assertEqual(len(first.contents), 0)
        second.contents.remove(ada)
        self.assertIs(ada.resource, None)
        self.assertEqual(ada.location, None)

    def test_only_data_objects(self):
        self.assertRaises(TypeError, Resource(LOCATION).contents.append, 'Ada')

    def test_modified(self):
        resource = Resource(LOCATION)
        self.assertFalse(resource.loaded)
        resource.contents.append(Person())
        self.assertTrue(resource.loaded)
        self.assertTrue(resource.modified)
        resource.set_loaded_contents([Person()])
        self.assertFalse(resource.modified)
        self.assertEqual(len(resource.contents), 1)

    def test_fragments(self):
        resource = Resource('store://localhost/app/teams/t1')
        team = Team(members=[Person(name='Ada'), Person(name='Grace', address=Address(city='NYC'))])
        resource.contents.append(Person(name='first'))
        resource.contents.append(team)
        grace = team.members[1]
        self.assertEqual(resource.fragment(team), '/1')
        self.assertEqual(resource.fragment(grace), '/1/members.1')
        self.assertEqual(resource.fragment(grace.address), '/1/members.1/address')
        self.assertEqual(str(grace.address.location),
                         'store://localhost/app/teams/t1#/1/members.1/address')
        self.assertIs(resource.get_object('/1/members.1/address'), grace.address)
        self.assertIs(resource.get_object(''), resource.contents[0])
        self.assertEqual(resource.get_object('/5'), None)
        self.assertEqual(resource.get_object('/1/nothing'), None)
        self.assertRaises(IllegalStateError, resource.fragment, Person())

    def test_extrinsic_ids(self):
        resource = Resource(LOCATION)
        ada = Person()
        resource.contents.append(ada)
        resource.set_id(ada, 'a1')
        self.assertEqual(resource.get_id(ada), 'a1')
        resource.contents.remove(ada)
        self.assertEqual(resource.get_id(ada), None)

    def test_no_handler(self):
        self.assertRaises(ConfigurationError, Resource(LOCATION).load)

    def test_merge_options(self):
        self.assertEqual(merge_options({'a': 1, 'b': 1}, {'b': 2}), {'a': 1, 'b': 2})
        self.assertEqual(merge_options(None, None), {})


class FakeDelegate(object):

    def __init__(self, resource):
        self.resource = resource
        self.requests = []

    def get_resource(self, location, load_on_demand):
        self.requests.append(str(location))
        return self.resource


class ResourceSetTest(unittest.TestCase):

    def setUp(self):
        self.locator = MemoryLocator()
        self.resource_set = create_resource_set(self.locator)

    def test_create_without_handler(self):
        resource_set = ResourceSet()
        try:
            resource_set.create_resource(LOCATION)
        except ConfigurationError as ex:
            self.assertIn('a registered handler is needed', str(ex))
        else:
            self.fail('ConfigurationError expected')
        self.assertRaises(ConfigurationError, self.resource_set.create_resource,
                          'http://localhost/app/people/abc')

    def test_cache_hit_for_equivalent_forms(self):
        resource = self.resource_set.create_resource(LOCATION)
        resource.contents.append(Person(name='Ada'))
        for text in (LOCATION,
                     'STORE://LOCALHOST/app/people/abc123',
                     'store://localhost:27017/app/people/abc123',
                     'mongodb://localhost/app/people/abc123',
                     LOCATION + '#/0'):
            self.assertIs(self.resource_set.get_resource(text), resource)
            self.assertIs(self.resource_set.get_cached_resource(Location.parse(text).trim_fragment()),
                          resource)
        self.assertEqual(self.locator.requests, [])

    def test_miss_without_load(self):
        self.assertEqual(self.resource_set.get_resource(LOCATION, False), None)
        self.assertEqual(self.resource_set.resources, [])
        self.assertEqual(self.locator.requests, [])

    def test_rekey(self):
        resource = self.resource_set.create_resource('store://localhost/app/people/')
        resource.contents.append(Person())
        resource.location = LOCATION
        self.assertIs(self.resource_set.get_cached_resource(LOCATION), resource)
        self.assertEqual(self.resource_set.get_cached_resource('store://localhost/app/people/'), None)
        self.assertTrue(isinstance(resource.location, Location))

    def test_removal_evicts(self):
        resource = self.resource_set.create_resource(LOCATION)
        self.resource_set.resources.remove(resource)
        self.assertEqual(self.resource_set.get_cached_resource(LOCATION), None)
        self.assertIs(resource.resource_set, None)
        # location changes of a detached resource do not reach the cache
        resource.location = 'store://localhost/app/people/other'
        self.assertEqual(self.resource_set.get_cached_resource('store://localhost/app/people/other'), None)

    def test_move_between_sets(self):
        other = create_resource_set(self.locator)
        resource = self.resource_set.create_resource(LOCATION)
        other.resources.append(resource)
        self.assertIs(resource.resource_set, other)
        self.assertIs(other.get_cached_resource(LOCATION), resource)
        self.assertEqual(self.resource_set.get_cached_resource(LOCATION), None)
        self.assertEqual(len(self.resource_set.resources), 0)

    def test_add_twice(self):
        resource = self.resource_set.create_resource(LOCATION)
        self.assertRaises(ValueError, self.resource_set.resources.append, resource)
        self.assertEqual(len(self.resource_set.resources), 1)
        self.assertIs(self.resource_set.get_cached_resource(LOCATION), resource)

    def test_location_map(self):
        converter = LocationConverter()
        converter.add_mapping('store://alias/', 'store://localhost/')
        resource_set = create_resource_set(self.locator, location_converter=converter)
        resource = resource_set.create_resource(LOCATION)
        self.assertIs(resource_set.get_cached_resource('store://alias/app/people/abc123'), resource)

    def test_delegates(self):
        delegated = Resource(LOCATION)
        delegate = FakeDelegate(delegated)
        resource_set = create_resource_set(self.locator, delegates=[delegate])
        self.assertIs(resource_set.get_resource(LOCATION), delegated)
        self.assertEqual(delegate.requests, [LOCATION])
        self.assertEqual(self.locator.requests, [])

    def test_get_object(self):
        resource = self.resource_set.create_resource(LOCATION)
        ada = Person(name='Ada', address=Address(city='London'))
        resource.contents.append(ada)
        self.assertIs(self.resource_set.get_object(LOCATION + '#/0'), ada)
        self.assertIs(self.resource_set.get_object(LOCATION + '#/0/address'), ada.address)
        self.assertIs(self.resource_set.get_object(LOCATION), ada)
        self.assertEqual(self.resource_set.get_object('store://localhost/app/people/none', False), None)

    def test_malformed_location(self):
        self.assertRaises(FormatError, self.resource_set.get_resource, 'store://localhost/app/people')
        resource = self.resource_set.get_cached_resource('store://localhost/app/people')
        self.assertFalse(resource.loaded)
        self.assertTrue(isinstance(resource.errors[0], FormatError))

    def test_exists_without_handler(self):
        self.assertFalse(self.resource_set.exists('http://localhost/app/people/abc'))
