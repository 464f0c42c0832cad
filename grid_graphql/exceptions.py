# Copyright 2017-present Kensho Technologies, LLC.
from typing import Sequence

from graphql import GraphQLError


class GridGraphQLError(Exception):
    """Generic error when querying the grid topology."""


class GridSchemaError(GridGraphQLError):
    """Exception raised when the grid schema cannot be loaded, built or wired.

    This is a construction-time failure, for example:
    - the bundled schema resource is missing;
    - the schema text does not parse, or is not a valid GraphQL schema;
    - a resolver is bound to a type or field the schema does not define;
    - a custom scalar in the schema has no codec, or a codec names an unknown scalar.
    """


class InvalidQueryDocumentError(GridGraphQLError):
    """Exception raised when a query could not be parsed or does not validate against the schema.

    The underlying GraphQL errors are preserved in the order they were reported, so that they
    can be returned to the client as-is.
    """

    def __init__(self, errors: Sequence[GraphQLError]) -> None:
        """Store the GraphQL errors that made the query document unusable."""
        if not errors:
            raise AssertionError("Expected at least one error describing the invalid query.")
        super().__init__("; ".join(error.message for error in errors))
        self.errors = tuple(errors)


class SessionNotFoundError(GridGraphQLError):
    """Exception raised when a session is requested by id but no node is running it."""


class GridConfigurationError(GridGraphQLError):
    """Exception raised when the query endpoint's configuration is missing or invalid."""
