# Copyright 2021-present Kensho Technologies, LLC.
from dataclasses import dataclass
import os
from typing import Mapping, Optional

from .document_cache import DEFAULT_CACHE_SIZE
from .exceptions import GridConfigurationError


PUBLIC_URL_ENV_VAR = "GRID_PUBLIC_URL"
CACHE_SIZE_ENV_VAR = "GRID_GRAPHQL_CACHE_SIZE"


@dataclass(frozen=True)
class GridGraphQLConfig:
    """Settings of the grid query endpoint.

    The location of the schema is deliberately not part of the configuration: the schema is
    bundled with the package, and the resolvers are written against it.
    """

    public_url: str  # The externally visible address of the grid, reported as Grid.uri.
    cache_size: int = DEFAULT_CACHE_SIZE  # Max number of prepared query documents to keep.

    def __post_init__(self) -> None:
        """Validate fields."""
        if not self.public_url:
            raise GridConfigurationError("The grid's public URL must be configured.")
        if self.cache_size <= 0:
            raise GridConfigurationError(
                f"Expected a positive document cache size, got {self.cache_size}."
            )

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "GridGraphQLConfig":
        """Read the configuration from environment variables.

        Args:
            environ: mapping to read the variables from, os.environ if not given.

        Returns:
            GridGraphQLConfig built from GRID_PUBLIC_URL and, if set, GRID_GRAPHQL_CACHE_SIZE.
        """
        if environ is None:
            environ = os.environ

        public_url = environ.get(PUBLIC_URL_ENV_VAR, "").strip()
        if not public_url:
            raise GridConfigurationError(
                f"Environment variable {PUBLIC_URL_ENV_VAR} must be set to the grid's public URL."
            )

        raw_cache_size = environ.get(CACHE_SIZE_ENV_VAR)
        if raw_cache_size is None:
            return cls(public_url=public_url)

        try:
            cache_size = int(raw_cache_size)
        except ValueError as e:
            raise GridConfigurationError(
                f"Environment variable {CACHE_SIZE_ENV_VAR} must be an integer, "
                f"got {repr(raw_cache_size)}."
            ) from e

        return cls(public_url=public_url, cache_size=cache_size)
