# Copyright 2021-present Kensho Technologies, LLC.
from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool

from . import __version__
from .handler import GraphqlHandler


GRAPHQL_PATH = "/graphql"


def create_app(handler: GraphqlHandler) -> FastAPI:
    """Expose the handler as a POST endpoint whose request body is the raw query text."""
    app = FastAPI(title="Grid GraphQL", version=__version__)

    @app.post(GRAPHQL_PATH)
    async def graphql_query(request: Request) -> Response:
        body = await request.body()
        # Query execution is synchronous, so it runs on a worker thread.
        http_response = await run_in_threadpool(handler.execute, body)
        return Response(
            content=http_response.content,
            status_code=http_response.status,
            headers=dict(http_response.headers),
        )

    return app
