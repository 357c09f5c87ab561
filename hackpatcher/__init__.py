#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
hackpatcher - batch IPS patching for ROM hack collections

Walks a directory of downloaded hacks, unpacks their archives and applies
every IPS patch found to a fresh copy of a base ROM.
"""

from .version import load_version

__version__ = load_version()
