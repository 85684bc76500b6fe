#!/usr/bin/env python

"""
@file setup.py
@brief setup file for mongomap, persistence of data objects in MongoDB
@see https://setuptools.pypa.io/
"""

import os

from setuptools import setup, find_packages

from mongomap import __version__ as version

# package_data ignores directories. Build flattened list of all resource files.
excludeFiles = set(['mongomaplocal.config'])
resFiles = [os.path.relpath(os.path.join(root, file), 'mongomap')
            for root, dirs, files in os.walk(os.path.join('mongomap', 'res'))
            for file in files if file not in excludeFiles]

setup( name = 'mongomap',
       version = version,
       description = 'Persistence of structured data objects in MongoDB, addressed by location',
       license = 'Apache 2.0',
       keywords = ['mongodb', 'persistence', 'dataobject'],

       packages = find_packages(include=['mongomap', 'mongomap.*']),
       package_data = {
           'mongomap': resFiles,
                      },
       test_suite = 'mongomap',
       python_requires = '>=3.7',
       install_requires = [
           'Twisted>=22.4.0',
           'zope.interface>=5.0',
           'pymongo>=4.0',
                          ],
       extras_require = {
           'test': ['pytest'],
                        },
       include_package_data = True,
       classifiers = [
           'Development Status :: 3 - Alpha',
           'Intended Audience :: Developers',
           'License :: OSI Approved :: Apache Software License',
           'Operating System :: OS Independent',
           'Programming Language :: Python :: 3',
           'Topic :: Database'
                     ]
     )
