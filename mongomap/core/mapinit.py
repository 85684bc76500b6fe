#!/usr/bin/env python

"""
@file mongomap/core/mapinit.py
@brief definitions and code that needs to run for any use of mongomap
"""

import logging.config
import os

from mongomap.core import mapconst as mc
from mongomap.util.config import Config, adjust_dir

# Configure logging system. An alternate logging config given through the
# environment replaces the packaged one.
logconf = adjust_dir(mc.LOGCONF_FILENAME)
altconf = os.environ.get(mc.MONGOMAP_ALTERNATE_LOGGING_CONF)
if altconf:
    altpath = adjust_dir(altconf)
    if os.path.exists(altpath):
        logconf = altpath
    else:
        logging.getLogger(__name__).warning(
            "%s specified (%s), but not found", mc.MONGOMAP_ALTERNATE_LOGGING_CONF, altpath)

logging.config.fileConfig(logconf, disable_existing_loggers=False)

# Load configuration properties for any module to access
mongomap_config = Config(mc.MONGOMAP_CONF_FILENAME)

# Update configuration with local override config
localconf = os.environ.get(mc.MONGOMAP_LOCAL_CONF)
if localconf:
    mongomap_config.update_from_file(localconf)

def config(name):
    """
    Get a subtree of the global configuration, typically for a module
    """
    return Config(name, mongomap_config)
