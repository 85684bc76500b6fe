"""
@file mongomap/data/store.py
@package mongomap.data.IMongoLocator interface handing out store clients
@package mongomap.data.MongoLocator pymongo implementation
@package mongomap.data.MemoryLocator in memory implementation
@brief connection locators: connection string -> client handle
"""

import copy
import itertools

from zope.interface import Interface, implementer

import pymongo
from bson import ObjectId
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import DuplicateKeyError, InvalidURI, ServerSelectionTimeoutError
from pymongo.results import InsertOneResult, UpdateResult

from mongomap.core import mapconst as mc
from mongomap.core import mapinit
from mongomap.core.exception import NotFoundError

import mongomap.util.maplog
log = mongomap.util.maplog.getLogger(__name__)

CONF = mapinit.config(__name__)


class IMongoLocator(Interface):
    """
    Interface of the capability supplying store clients. Clients are safe to
    share, implementations hand out one client per connection string.
    """

    def get_client(connection_string):
        """
        @param connection_string  mongodb://host[:port]
        @retval client, indexable by database name; databases are indexable
            by collection name
        @throws NotFoundError if no client can be created for the string
        """


@implementer(IMongoLocator)
class MongoLocator(object):
    """
    Hands out pymongo clients, one per connection string. No health checks
    or retries: a failing server surfaces on the first operation.
    """

    def __init__(self, **client_options):
        self.client_options = dict(CONF.getValue('client_options', {}))
        self.client_options.update(client_options)
        self.clients = {}

    def get_client(self, connection_string):
        client = self.clients.get(connection_string)
        if client is None:
            try:
                client = pymongo.MongoClient(connection_string, **self.client_options)
            except (InvalidURI, PyMongoConfigurationError) as ex:
                log.error('Cannot create client for %s: %s', connection_string, ex)
                raise NotFoundError('No store client for %s' % connection_string) from ex
            log.info('Created store client for %s', connection_string)
            self.clients[connection_string] = client
        return client

    def close(self):
        for client in self.clients.values():
            client.close()
        self.clients.clear()


def _matches(document, query):
    for key, value in query.items():
        if document.get(key, None) != value:
            return False
    return True


class MemoryCollection(object):
    """
    Memory implementation of the part of the pymongo collection API used by
    the handler, keeping documents in a dict keyed by _id. Documents are
    copied in and out, as they would be by a client connection.
    Every call is recorded in operations.
    """

    def __init__(self, database, name):
        self.database = database
        self.name = name
        self.documents = {}
        self.operations = []
        self.write_concern = None

    def _operation(self, name):
        self.operations.append(name)
        self.database.client.check_reachable()

    def with_options(self, write_concern=None, **kwargs):
        self.write_concern = write_concern
        return self

    def insert_one(self, document):
        self._operation('insert_one')
        if mc.ID_KEY not in document:
            document[mc.ID_KEY] = ObjectId()
        id = document[mc.ID_KEY]
        if id in self.documents:
            raise DuplicateKeyError('duplicate key: %r' % (id,))
        self.documents[id] = copy.deepcopy(document)
        return InsertOneResult(id, True)

    def replace_one(self, query, document, upsert=False):
        self._operation('replace_one')
        for id, existing in self.documents.items():
            if _matches(existing, query):
                replacement = copy.deepcopy(document)
                replacement[mc.ID_KEY] = id
                self.documents[id] = replacement
                return UpdateResult({'n': 1, 'nModified': 1, 'ok': 1.0}, True)
        if not upsert:
            return UpdateResult({'n': 0, 'nModified': 0, 'ok': 1.0}, True)
        replacement = copy.deepcopy(document)
        id = replacement.setdefault(mc.ID_KEY, query.get(mc.ID_KEY, ObjectId()))
        self.documents[id] = replacement
        return UpdateResult({'n': 1, 'nModified': 0, 'upserted': id, 'ok': 1.0}, True)

    def find(self, query=None):
        self._operation('find')
        query = query or {}
        found = [copy.deepcopy(d) for d in self.documents.values() if _matches(d, query)]
        return iter(found)

    def find_one(self, query=None):
        self._operation('find_one')
        for document in self.documents.values():
            if _matches(document, query or {}):
                return copy.deepcopy(document)
        return None

    def find_one_and_delete(self, query):
        self._operation('find_one_and_delete')
        for id, document in list(self.documents.items()):
            if _matches(document, query):
                del self.documents[id]
                return document
        return None


class MemoryDatabase(object):

    def __init__(self, client, name):
        self.client = client
        self.name = name
        self.collections = {}

    def __getitem__(self, name):
        collection = self.collections.get(name)
        if collection is None:
            collection = self.collections[name] = MemoryCollection(self, name)
        return collection


class MemoryClient(object):

    def __init__(self, connection_string):
        self.connection_string = connection_string
        self.databases = {}
        self.reachable = True

    def check_reachable(self):
        if not self.reachable:
            raise ServerSelectionTimeoutError('%s unreachable' % self.connection_string)

    def __getitem__(self, name):
        database = self.databases.get(name)
        if database is None:
            database = self.databases[name] = MemoryDatabase(self, name)
        return database

    def operations(self):
        """
        @retval all operations recorded by the collections of this client
        """
        return list(itertools.chain.from_iterable(
            c.operations for d in self.databases.values() for c in d.collections.values()))

    def close(self):
        pass


@implementer(IMongoLocator)
class MemoryLocator(object):
    """
    Memory implementation of the connection locator. Simulates typical
    usage of a client connection to a store, for tests and embedding.
    """

    def __init__(self):
        self.clients = {}
        self.requests = []

    def get_client(self, connection_string):
        self.requests.append(connection_string)
        client = self.clients.get(connection_string)
        if client is None:
            client = self.clients[connection_string] = MemoryClient(connection_string)
        return client

    def close(self):
        self.clients.clear()
