# Copyright 2017-present Kensho Technologies, LLC.
from hashlib import sha256
from importlib import resources
import logging
from typing import Any, Dict, Optional
from urllib.parse import SplitResult, urlsplit

from graphql import (
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLSyntaxError,
    StringValueNode,
    assert_valid_schema,
    build_schema,
    is_specified_scalar_type,
    lexicographic_sort_schema,
    print_schema,
)
from graphql.language.ast import ValueNode

from ..exceptions import GridSchemaError
from .typedefs import FieldResolver, FieldResolverTable, ResolverBindings  # noqa


logger = logging.getLogger(__name__)

# Name of the bundled type definitions, resolved relative to this package.
GRID_SCHEMA = "grid-schema.graphqls"

URL_SCHEMES = frozenset({"http", "https"})


def _split_uri(value: str) -> SplitResult:
    """Split an absolute URI into its components, raising ValueError if it is malformed."""
    if any(character.isspace() for character in value):
        raise ValueError(f"Expected a URI without whitespace, got {repr(value)}.")

    parts = urlsplit(value)  # This will raise ValueError on e.g. an unterminated IPv6 host.
    if not parts.scheme:
        raise ValueError(f"Expected an absolute URI with a scheme, got {repr(value)}.")
    return parts


def _check_url_parts(parts: SplitResult) -> SplitResult:
    """Ensure the URI components describe a network-reachable http(s) URL."""
    if parts.scheme not in URL_SCHEMES:
        raise ValueError(
            f"Expected a URL with one of the schemes {sorted(URL_SCHEMES)}, "
            f"got {repr(parts.geturl())}."
        )
    if not parts.hostname:
        raise ValueError(f"Expected a URL with a host, got {repr(parts.geturl())}.")
    if parts.port == 0:  # Out of range or non-numeric ports raise ValueError on access.
        raise ValueError(f"Expected a URL with a non-zero port, got {repr(parts.geturl())}.")
    return parts


def _coerce_uri_parts(value: Any) -> SplitResult:
    """Return the URI components of a SplitResult or URI string."""
    if isinstance(value, SplitResult):
        if not value.scheme:
            raise ValueError(f"Expected an absolute URI with a scheme, got {repr(value)}.")
        return value
    elif isinstance(value, str):
        return _split_uri(value)
    else:
        raise ValueError(
            f"Expected a URI string or a urllib SplitResult. "
            f"Got {value} of type {type(value)} instead."
        )


def _serialize_uri(value: Any) -> str:
    """Serialize a URI to its string representation."""
    return _coerce_uri_parts(value).geturl()


def _parse_uri_value(value: Any) -> SplitResult:
    """Deserialize a URI from its string representation."""
    if not isinstance(value, str):
        raise ValueError(f"Expected a URI string. Got {value} of type {type(value)} instead.")
    return _split_uri(value)


def _parse_uri_literal(
    value_node: ValueNode, _variables: Optional[Dict[str, Any]] = None
) -> SplitResult:
    """Deserialize a URI from a string literal in a query."""
    if not isinstance(value_node, StringValueNode):
        raise ValueError(f"Expected a string literal for a URI, got {value_node}.")
    return _parse_uri_value(value_node.value)


def _serialize_url(value: Any) -> str:
    """Serialize an http(s) URL to its string representation."""
    return _check_url_parts(_coerce_uri_parts(value)).geturl()


def _parse_url_value(value: Any) -> SplitResult:
    """Deserialize an http(s) URL from its string representation."""
    return _check_url_parts(_parse_uri_value(value))


def _parse_url_literal(
    value_node: ValueNode, _variables: Optional[Dict[str, Any]] = None
) -> SplitResult:
    """Deserialize an http(s) URL from a string literal in a query."""
    return _check_url_parts(_parse_uri_literal(value_node))


GraphQLUri = GraphQLScalarType(
    name="Uri",
    description=(
        "The `Uri` scalar type represents an absolute URI, such as the address of a grid "
        'component or of a session: for example "ws://localhost:4444/session/1234". '
        "Values are serialized as strings and must include a scheme."
    ),
    serialize=_serialize_uri,
    parse_value=_parse_uri_value,
    parse_literal=_parse_uri_literal,
)


GraphQLUrl = GraphQLScalarType(
    name="Url",
    description=(
        "The `Url` scalar type represents an absolute http or https URL with a host, "
        'for example "http://10.0.0.5:5555". Values are serialized as strings.'
    ),
    serialize=_serialize_url,
    parse_value=_parse_url_value,
    parse_literal=_parse_url_literal,
)


def _read_schema_resource(resource_name: str) -> str:
    """Read a schema resource bundled with this package."""
    try:
        return resources.files(__name__).joinpath(resource_name).read_text(encoding="utf-8")
    except (FileNotFoundError, IsADirectoryError) as e:
        raise GridSchemaError(
            f"Could not load the bundled schema resource {resource_name}: {e}"
        ) from e


def load_grid_schema_text() -> str:
    """Return the type definitions of the grid schema."""
    return _read_schema_resource(GRID_SCHEMA)


def _check_bindings_against_schema(schema: GraphQLSchema, bindings: ResolverBindings) -> None:
    """Raise GridSchemaError if the bindings do not line up with the schema's types."""
    object_type_names = sorted(
        type_name
        for type_name, type_obj in schema.type_map.items()
        if isinstance(type_obj, GraphQLObjectType) and not type_name.startswith("__")
    )
    for type_name, field_resolvers in bindings.field_resolvers.items():
        type_obj = schema.get_type(type_name)
        if not isinstance(type_obj, GraphQLObjectType):
            raise GridSchemaError(
                f"Resolvers were bound to type {type_name}, but the schema has no object type "
                f"with that name. Object types in the schema: {object_type_names}"
            )

        unknown_fields = set(field_resolvers) - set(type_obj.fields)
        if unknown_fields:
            raise GridSchemaError(
                f"Resolvers were bound to fields {sorted(unknown_fields)} of type {type_name}, "
                f"but the type only defines fields {sorted(type_obj.fields)}."
            )

    schema_scalar_names = {
        type_name
        for type_name, type_obj in schema.type_map.items()
        if isinstance(type_obj, GraphQLScalarType) and not is_specified_scalar_type(type_obj)
    }
    codec_names = set(bindings.scalars_by_name)

    unknown_codecs = codec_names - schema_scalar_names
    if unknown_codecs:
        raise GridSchemaError(
            f"Codecs were supplied for scalars {sorted(unknown_codecs)} that the schema does "
            f"not define. Custom scalars in the schema: {sorted(schema_scalar_names)}"
        )

    missing_codecs = schema_scalar_names - codec_names
    if missing_codecs:
        raise GridSchemaError(
            f"The schema defines custom scalars {sorted(missing_codecs)} without a codec. "
            f"Every custom scalar must be given serialization and parsing functions."
        )


def compile_grid_schema(type_definitions: str, bindings: ResolverBindings) -> GraphQLSchema:
    """Build an executable schema from type definitions and their runtime wiring.

    Args:
        type_definitions: GraphQL SDL text describing the queryable types.
        bindings: resolvers for object type fields, and codecs for the custom scalars.
                  Fields without a bound resolver use graphql-core's default resolver, which
                  reads the attribute or key of the parent value with the field's name.

    Returns:
        GraphQLSchema ready for execution. It must not be modified afterwards: it is shared,
        read-only, by every query executed against it.

    Raises:
        GridSchemaError: if the type definitions are malformed, or if the bindings refer to
                         types, fields or scalars that do not match the schema.
    """
    try:
        schema = build_schema(type_definitions)
    except GraphQLSyntaxError as e:
        raise GridSchemaError(f"Could not parse the schema type definitions: {e}") from e
    except TypeError as e:
        # graphql-core reports SDL that parses but does not describe a valid schema this way.
        raise GridSchemaError(f"Invalid schema type definitions: {e}") from e

    _check_bindings_against_schema(schema, bindings)

    for type_name, field_resolvers in bindings.field_resolvers.items():
        type_obj = schema.get_type(type_name)
        for field_name, resolver in field_resolvers.items():
            type_obj.fields[field_name].resolve = resolver

    for scalar_name, codec in bindings.scalars_by_name.items():
        schema_scalar = schema.get_type(scalar_name)
        schema_scalar.serialize = codec.serialize
        schema_scalar.parse_value = codec.parse_value
        schema_scalar.parse_literal = codec.parse_literal

    try:
        assert_valid_schema(schema)
    except TypeError as e:
        raise GridSchemaError(f"Invalid schema: {e}") from e

    logger.info(
        "Compiled grid schema with %d types, fingerprint %s",
        len(schema.type_map),
        compute_schema_fingerprint(schema),
    )
    return schema


def compute_schema_fingerprint(schema: GraphQLSchema) -> str:
    """Compute a fingerprint compactly representing the data in the given schema.

    The fingerprint is not sensitive to things like type or field order, and is used to tell
    apart deployments serving different versions of the schema.

    Args:
        schema: the schema for which to compute a fingerprint.

    Returns:
        a hexadecimal string fingerprint compactly representing the data in the schema.
    """
    lexicographically_sorted_schema = lexicographic_sort_schema(schema)
    text = print_schema(lexicographically_sorted_schema)
    return sha256(text.encode("utf-8")).hexdigest()
