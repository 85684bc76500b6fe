#!/usr/bin/env python

"""
@file mongomap/core/mapconst.py
@brief definitions of mongomap package wide constants
"""

# Name of central logging configuration file
LOGCONF_FILENAME = 'res/logging/mongomaplogging.conf'

# Name of environment variable to override logging configuration
MONGOMAP_ALTERNATE_LOGGING_CONF = 'MONGOMAP_ALTERNATE_LOGGING_CONF'

# Name of central configuration file (not to be changed)
MONGOMAP_CONF_FILENAME = 'res/config/mongomap.config'

# Name of environment variable pointing at a local config override file
MONGOMAP_LOCAL_CONF = 'MONGOMAP_LOCAL_CONF'

# Canonical location scheme and the aliases accepted for it
SCHEME = 'store'
SCHEME_ALIASES = ('mongodb', 'mongo')

# Scheme of the connection strings handed to the connection locator
CONNECTION_SCHEME = 'mongodb'
DEFAULT_PORT = 27017

# Reserved document keys. Field names cannot start with an underscore, so
# they never collide.
ID_KEY = '_id'
CLASS_KEY = '_class'
PROXY_KEY = '_proxyLocation'
EXTRINSIC_ID_KEY = '_extrinsicId'
TIME_STAMP_KEY = '_timeStamp'

# Load option: copy attribute values of referenced objects into their proxies
# so they can be read without resolving the proxy.  Value type: bool
OPTION_PROXY_ATTRIBUTES = 'PROXY_ATTRIBUTES'

# Save option: store attributes even when they hold their default value, so
# they can be queried on.  Value type: bool
OPTION_SERIALIZE_DEFAULT_ATTRIBUTE_VALUES = 'SERIALIZE_DEFAULT_ATTRIBUTE_VALUES'

# Save option: when the location carries no id, use the object's id
# attribute as _id.  Value type: bool
OPTION_USE_ID_ATTRIBUTE_AS_PRIMARY_KEY = 'USE_ID_ATTRIBUTE_AS_PRIMARY_KEY'

# Save option: pymongo WriteConcern handed to the collection on insert/update
OPTION_WRITE_CONCERN = 'WRITE_CONCERN'

# Load option: a query returns a ResultCursor instead of a QueryResult
OPTION_QUERY_CURSOR = 'QUERY_CURSOR'
