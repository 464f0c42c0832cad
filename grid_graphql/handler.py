# Copyright 2021-present Kensho Technologies, LLC.
"""Glue between the grid's HTTP endpoint and query execution.

The request body is the query text itself: variables and operation names are not supported.
A response carrying data is a success, even if some fields failed to resolve and are reported
next to it; a response without data is a server error whose body is the list of errors.
"""
from dataclasses import dataclass, field
from http import HTTPStatus
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from graphql import ExecutionResult

from .config import GridGraphQLConfig
from .distributor import Distributor
from .document_cache import DEFAULT_CACHE_SIZE, DocumentCache
from .query_execution import PreparedDocument, QueryExecutor
from .resolvers import build_resolver_bindings
from .schema import GraphQLUri, compile_grid_schema, load_grid_schema_text


logger = logging.getLogger(__name__)

JSON_UTF_8 = "application/json; charset=utf-8"


@dataclass(frozen=True)
class HttpResponse:
    """Status, headers and encoded body of a response to a grid query."""

    status: int = HTTPStatus.OK
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""

    def json(self) -> Any:
        """Decode the JSON body of the response."""
        return json.loads(self.content.decode("utf-8"))


def _json_response(status: int, payload: Any) -> HttpResponse:
    return HttpResponse(
        status=status,
        headers={"Content-Type": JSON_UTF_8},
        content=json.dumps(payload).encode("utf-8"),
    )


def _format_result_errors(result: ExecutionResult) -> List[Dict[str, Any]]:
    return [error.formatted for error in (result.errors or [])]


class GraphqlHandler:
    """Answer GraphQL queries about the grid's nodes and sessions."""

    def __init__(
        self,
        distributor: Optional[Distributor],
        public_url: Optional[str],
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        """Build the schema and the query executor.

        Args:
            distributor: the grid's distributor, read on every query.
            public_url: the externally visible address of the grid.
            cache_size: maximum number of distinct prepared queries to keep.

        Raises:
            ValueError: if the distributor or public URL is missing, or the URL is malformed.
            GridSchemaError: if the bundled schema cannot be loaded or wired.
        """
        if distributor is None:
            raise ValueError("A distributor is required to answer queries about the grid.")
        if not public_url:
            raise ValueError("The grid's public URL is required.")

        public_uri = GraphQLUri.parse_value(public_url)
        schema = compile_grid_schema(
            load_grid_schema_text(), build_resolver_bindings(distributor, public_uri)
        )
        document_cache: DocumentCache[str, PreparedDocument] = DocumentCache(cache_size)
        self._executor = QueryExecutor(schema, document_cache)

    @classmethod
    def from_config(cls, distributor: Distributor, config: GridGraphQLConfig) -> "GraphqlHandler":
        """Create a handler from the endpoint's configuration."""
        return cls(distributor, config.public_url, cache_size=config.cache_size)

    @property
    def executor(self) -> QueryExecutor:
        """Return the executor used to run queries."""
        return self._executor

    def execute_query(self, query: str) -> HttpResponse:
        """Execute the query text and encode its result."""
        result = self._executor.execute(query)

        if result.data is not None:
            return _json_response(HTTPStatus.OK, result.formatted)

        errors = _format_result_errors(result)
        logger.warning("Query failed with %d error(s): %s", len(errors), errors)
        return _json_response(HTTPStatus.INTERNAL_SERVER_ERROR, errors)

    def execute(self, body: Union[bytes, str]) -> HttpResponse:
        """Handle a request whose body is the query text, encoded as UTF-8."""
        if isinstance(body, bytes):
            try:
                query = body.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.warning("Rejected request body that is not valid UTF-8: %s", e)
                return _json_response(
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    [{"message": f"The request body must be UTF-8 encoded query text: {e}"}],
                )
        else:
            query = body

        return self.execute_query(query)
