# Copyright 2021-present Kensho Technologies, LLC.
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Tuple

from graphql import GraphQLScalarType


# A graphql-core field resolver: called with the parent value, the resolve info
# (whose context is the execution context) and the field arguments as keyword arguments.
FieldResolver = Callable[..., Any]

# Dict of GraphQL object type name -> (Dict of field name on that type -> its resolver)
FieldResolverTable = Mapping[str, Mapping[str, FieldResolver]]


@dataclass(frozen=True)
class ResolverBindings:
    """The runtime wiring of the schema: field resolvers and custom scalar codecs.

    The bindings are checked against the schema when it is compiled, so that a resolver bound
    to a misspelled field, or a scalar left without a codec, fails at construction time rather
    than at the first query that touches it.
    """

    field_resolvers: FieldResolverTable
    scalars: Tuple[GraphQLScalarType, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate fields."""
        scalar_names = [scalar.name for scalar in self.scalars]
        if len(scalar_names) != len(set(scalar_names)):
            raise AssertionError(f"Duplicate scalar codecs found in bindings: {scalar_names}")

    @property
    def scalars_by_name(self) -> Dict[str, GraphQLScalarType]:
        """Return the scalar codecs keyed by the name of the scalar they implement."""
        return {scalar.name: scalar for scalar in self.scalars}
