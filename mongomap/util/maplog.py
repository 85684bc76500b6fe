#!/usr/bin/env python

"""
@file mongomap/util/maplog.py
@brief Abstracts from any form of logging in mongomap
"""
import logging

class LogFactory(object):
    """
    Factory for producing logger objects with additional handlers.
    A global instance of this factory is declared in this module, and
    is used by the getLogger global used all over mongomap.
    """
    def __init__(self):
        self._handlers = []
        self._loggers = {}

    def get_logger(self, loggername):
        """
        Creates an instance of a logger and adds any handlers registered
        with this factory. Handlers registered later are attached to every
        logger already handed out.
        """
        logger = logging.getLogger(loggername)
        for handler in self._handlers:
            if handler not in logger.handlers:
                logger.addHandler(handler)
        self._loggers[loggername] = logger
        return logger

    def add_handler(self, handler):
        """
        Adds a handler to all loggers produced by this factory.
        The handler must be derived from logging.Handler.
        """
        self._handlers.append(handler)
        for logger in self._loggers.values():
            logger.addHandler(handler)

    def remove_handler(self, handler):
        self._handlers.remove(handler)
        for logger in self._loggers.values():
            logger.removeHandler(handler)

# declare global instance
try:
    log_factory
except NameError:
    log_factory = LogFactory()

def getLogger(loggername=__name__):
    """
    This function is used to assign every module in the code base a separate
    logger instance. Currently it just delegates to Python logging.
    """
    return log_factory.get_logger(loggername)
