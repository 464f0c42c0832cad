# Copyright 2017-present Kensho Technologies, LLC.
"""Commonly-used functions and data types from this package."""
from .config import GridGraphQLConfig  # noqa
from .distributor import (  # noqa
    Availability,
    Distributor,
    DistributorStatus,
    NodeStatus,
    Session,
    Slot,
)
from .document_cache import DEFAULT_CACHE_SIZE, CacheStats, DocumentCache  # noqa
from .exceptions import (  # noqa
    GridConfigurationError,
    GridGraphQLError,
    GridSchemaError,
    InvalidQueryDocumentError,
    SessionNotFoundError,
)
from .handler import JSON_UTF_8, GraphqlHandler, HttpResponse  # noqa
from .query_execution import PreparedDocument, QueryExecutor, prepare_document  # noqa
from .resolvers import build_resolver_bindings  # noqa
from .schema import (  # noqa
    GRID_SCHEMA,
    GraphQLUri,
    GraphQLUrl,
    ResolverBindings,
    compile_grid_schema,
    compute_schema_fingerprint,
    load_grid_schema_text,
)


__package_name__ = "grid-graphql"
__version__ = "1.0.0"
