#!/usr/bin/env python
# Copyright 2017-present Kensho Technologies, LLC.
"""Utility modeled after json.tool, checks a grid query read from stdin against the schema.

Used as: python -m grid_graphql.tool [--log-level LEVEL]

Prints the pretty-printed query if it is valid, or its errors otherwise.
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from graphql import build_schema, print_ast

from .exceptions import InvalidQueryDocumentError
from .query_execution import prepare_document
from .schema import load_grid_schema_text


def main(argv: Optional[List[str]] = None) -> int:
    """Read a query from standard input and validate it, returning the process exit status."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--log-level", default="WARNING", help="Logging level, e.g. DEBUG.")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    query = sys.stdin.read()
    # Validation only needs the type definitions, not the runtime wiring.
    schema = build_schema(load_grid_schema_text())

    try:
        prepared_document = prepare_document(schema, query)
    except InvalidQueryDocumentError as e:
        sys.stdout.write(json.dumps([error.formatted for error in e.errors], indent=4) + "\n")
        return 1

    sys.stdout.write(print_ast(prepared_document.document) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
