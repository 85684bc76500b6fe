#!/usr/bin/env python

"""
@file mongomap/util/config.py
@brief  supports work with config files
"""

import ast
import os.path
import weakref

PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

def adjust_dir(path):
    """
    Resolves a config file name relative to the mongomap package directory,
    unless it is absolute.
    """
    if os.path.isabs(path):
        return path
    return os.path.join(PACKAGE_DIR, path)

def read_config_file(filename):
    with open(filename) as f:
        return ast.literal_eval(f.read())

class Config(object):
    """
    Helper class managing config files. A config file holds a Python dict
    literal; sub-configs look their values up in the live parent config.
    """

    def __init__(self, cfgFile, config=None):
        """
        @brief Creates a new Config for retrieving configuration
        @param cfgFile filename or key within Config
        @param config if present, a Config instance for which the value given
            by cfgFile will be extracted
        """
        assert cfgFile
        self.config = None

        if config is not None:
            # Save config to look up later
            self.filename = cfgFile
            self.config = weakref.ref(config)
            self.obj = None
        else:
            self.filename = adjust_dir(cfgFile)
            self.obj = read_config_file(self.filename)

    def __getitem__(self, key):
        return self._getValue(self.obj, key)

    def __str__(self):
        result = ''
        result += 'Config File Name: %s \n' % self.filename
        result += 'Config Content: \n %s' % str(self.obj)
        return result

    def _getValue(self, dic, key, default=None):
        if dic is None:
            # lookup in live configuration
            if self.config is not None and self.config() is not None:
                obj = self.config().getValue(self.filename, {})
                return obj.get(key, default)
            return default
        return dic.get(key, default)

    def getValue(self, key, default=None):
        return self._getValue(self.obj, key, default)

    def getValue2(self, key1, key2, default=None):
        value = self.getValue(key1, {})
        return value.get(key2, default)

    def update_from_file(self, filename):
        filename = adjust_dir(filename)
        if os.path.isfile(filename):
            self.update(read_config_file(filename))

    def update(self, updates):
        """
        Recursively updates configuration dict with values in given dict.
        """
        self._update_dict(self.obj, updates)

    def _update_dict(self, src, upd):
        assert type(src) is dict and type(upd) is dict
        for ukey, uval in upd.items():
            if type(uval) is dict:
                if not ukey in src:
                    src[ukey] = {}
                self._update_dict(src[ukey], uval)
            else:
                src[ukey] = uval
