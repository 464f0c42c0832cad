# Copyright 2021-present Kensho Technologies, LLC.
from dataclasses import dataclass
import logging

from graphql import (
    DocumentNode,
    ExecutionResult,
    GraphQLError,
    GraphQLSchema,
    GraphQLSyntaxError,
    execute_sync,
    parse,
    validate,
)

from .document_cache import DocumentCache
from .exceptions import InvalidQueryDocumentError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedDocument:
    """A query that was parsed and successfully validated against the schema."""

    query: str
    document: DocumentNode


def prepare_document(schema: GraphQLSchema, query: str) -> PreparedDocument:
    """Parse the query and validate it against the schema.

    Args:
        schema: the schema the query will be executed against.
        query: raw GraphQL query text.

    Returns:
        PreparedDocument that can be executed any number of times.

    Raises:
        InvalidQueryDocumentError: if the query does not parse, or does not validate. The
                                   error carries the GraphQL errors describing why.
    """
    try:
        document = parse(query)
    except GraphQLSyntaxError as e:
        raise InvalidQueryDocumentError([e]) from e

    validation_errors = validate(schema, document)
    if validation_errors:
        raise InvalidQueryDocumentError(validation_errors)

    return PreparedDocument(query=query, document=document)


class QueryExecutor:
    """Execute raw query text against a schema, preparing each distinct query only once."""

    def __init__(
        self, schema: GraphQLSchema, document_cache: DocumentCache[str, PreparedDocument]
    ) -> None:
        """Create an executor sharing the given schema and cache across all executions."""
        self._schema = schema
        self._document_cache = document_cache

    @property
    def document_cache(self) -> DocumentCache[str, PreparedDocument]:
        """Return the cache of prepared documents used by this executor."""
        return self._document_cache

    def _prepare(self, query: str) -> PreparedDocument:
        return prepare_document(self._schema, query)

    def execute(self, query: str) -> ExecutionResult:
        """Execute the query and return its result.

        Queries that cannot be parsed or validated produce a result with errors and no data.
        Errors raised by resolvers are reported as field errors next to the data that could
        still be resolved. Nothing is retried.
        """
        try:
            prepared_document = self._document_cache.get_or_compute(query, self._prepare)
        except InvalidQueryDocumentError as e:
            return ExecutionResult(data=None, errors=list(e.errors))
        except Exception as e:  # pylint: disable=broad-except
            # A failure of the cache machinery is reported to the client the same way as an
            # invalid query, since neither leaves a document that could be executed.
            logger.exception("Failed to prepare query %r", query)
            return ExecutionResult(data=None, errors=[GraphQLError(str(e), original_error=e)])

        return execute_sync(self._schema, prepared_document.document)
