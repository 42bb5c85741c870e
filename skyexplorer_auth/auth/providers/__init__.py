"""
User provider implementations.

Available providers:
- database: relational store via Peewee (SQLite, PostgreSQL, MySQL)
- xml: single XML document on disk
"""

from skyexplorer_auth.auth.providers.base import UserProvider
from skyexplorer_auth.auth.providers.sql import PeeweeUserProvider
from skyexplorer_auth.auth.providers.xml import XmlUserProvider

__all__ = ["UserProvider", "PeeweeUserProvider", "XmlUserProvider"]
