# Copyright 2021-present Kensho Technologies, LLC.
import unittest
from unittest.mock import patch

from ..config import CACHE_SIZE_ENV_VAR, PUBLIC_URL_ENV_VAR, GridGraphQLConfig
from ..document_cache import DEFAULT_CACHE_SIZE
from ..exceptions import GridConfigurationError
from .test_helpers import PUBLIC_URL


class GridGraphQLConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = GridGraphQLConfig.from_environment({PUBLIC_URL_ENV_VAR: PUBLIC_URL})

        self.assertEqual(GridGraphQLConfig(public_url=PUBLIC_URL), config)
        self.assertEqual(DEFAULT_CACHE_SIZE, config.cache_size)

    def test_cache_size(self) -> None:
        config = GridGraphQLConfig.from_environment(
            {PUBLIC_URL_ENV_VAR: f"  {PUBLIC_URL}\n", CACHE_SIZE_ENV_VAR: "32"}
        )

        self.assertEqual(GridGraphQLConfig(public_url=PUBLIC_URL, cache_size=32), config)

    def test_reads_process_environment(self) -> None:
        with patch.dict("os.environ", {PUBLIC_URL_ENV_VAR: PUBLIC_URL}, clear=True):
            config = GridGraphQLConfig.from_environment()

        self.assertEqual(PUBLIC_URL, config.public_url)

    def test_missing_public_url(self) -> None:
        for environ in ({}, {PUBLIC_URL_ENV_VAR: "   "}, {CACHE_SIZE_ENV_VAR: "32"}):
            with self.assertRaises(GridConfigurationError):
                GridGraphQLConfig.from_environment(environ)

    def test_invalid_cache_size(self) -> None:
        for raw_cache_size in ("lots", "1.5", "", "0", "-3"):
            with self.assertRaises(GridConfigurationError):
                GridGraphQLConfig.from_environment(
                    {PUBLIC_URL_ENV_VAR: PUBLIC_URL, CACHE_SIZE_ENV_VAR: raw_cache_size}
                )

    def test_direct_construction_is_validated(self) -> None:
        with self.assertRaises(GridConfigurationError):
            GridGraphQLConfig(public_url="")
        with self.assertRaises(GridConfigurationError):
            GridGraphQLConfig(public_url=PUBLIC_URL, cache_size=0)
