# src/ride_repository/__init__.py

"""
Ride Repository Initialization.

Schema-adaptive search and write access to a transfer-booking ("rides")
table and its price list, over MySQL or SQLite, plus a FastAPI application
exposing them.

It initializes a logger with a NullHandler and makes the repositories, the
schema introspector, the search options and the exceptions available at the
top level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures the
# "ride_repository" logger (the bundled API does so in api/main.py).
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Exceptions
# --------------------------------------------------------------------------
from .base.exceptions import (
    MissingFieldsException,
    NoUpdatableFieldsException,
    ObjectNotFoundException,
    RepositoryException,
    SchemaMismatchException,
    StoreUnavailableException,
    ValidationException,
)

# --------------------------------------------------------------------------
# Schema, Query and Models
# --------------------------------------------------------------------------
from .base.schema import (
    ID_COLUMN_CANDIDATES,
    DateColumnKind,
    SchemaIntrospector,
    SchemaProfile,
)
from .base.query import RideFilters, SearchOptions, SearchQueryBuilder
from .base.models import PriceEntry, RidePage, RideRecord

# --------------------------------------------------------------------------
# Repositories and Backends
# --------------------------------------------------------------------------
from .ride_repository import RideRepository
from .price_repository import PriceRepository
from .db_implementations.mysql_backend import MySQLBackend
from .db_implementations.sqlite_backend import SqliteBackend

__all__ = [
    # Exceptions
    "RepositoryException",
    "ValidationException",
    "MissingFieldsException",
    "NoUpdatableFieldsException",
    "ObjectNotFoundException",
    "StoreUnavailableException",
    "SchemaMismatchException",
    # Schema
    "ID_COLUMN_CANDIDATES",
    "DateColumnKind",
    "SchemaIntrospector",
    "SchemaProfile",
    # Query
    "RideFilters",
    "SearchOptions",
    "SearchQueryBuilder",
    # Models
    "RideRecord",
    "RidePage",
    "PriceEntry",
    # Repositories
    "RideRepository",
    "PriceRepository",
    # Backends
    "MySQLBackend",
    "SqliteBackend",
    # Logging
    "logger",
]
