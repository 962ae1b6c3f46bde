"""
Polling reader wired to the real render API client over a mocked HTTP transport.
"""

import asyncio
import json

import httpx
import pytest

from graphite_io.poll import GraphiteIterativeReader, GraphitePollStatement
from graphite_io.render import GraphiteQuery, GraphiteRenderApiService


class RenderApi:
    """Answers /render like Graphite: exclusive `from`, null points left out."""

    def __init__(self):
        self.points = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != "Basic dG9rZW4=":
            return httpx.Response(401, text="unauthorized")
        lower = request.url.params.get("from")
        body = []
        for target in request.url.params.get_list("target"):
            window = [[v, ts] for v, ts in self.points.get(target, []) if lower is None or ts > int(lower)]
            if window:
                body.append({"target": target, "tags": {"name": target}, "datapoints": window})
        return httpx.Response(200, text=json.dumps(body))


@pytest.mark.asyncio
async def test_incremental_polling_through_the_render_api():
    api = RenderApi()
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(api))
    reader = GraphiteIterativeReader(
        client_factory=lambda: GraphiteRenderApiService(
            "http://graphite/render/", http_client=http_client, basic_auth="dG9rZW4="
        ),
        poll_statement=GraphitePollStatement(GraphiteQuery.of("app.a|app.b")),
        poll_delay=0.01,
    )

    await reader.start()
    first = await asyncio.wait_for(reader.next(), 1)
    assert first.results == []

    api.points["app.a"] = [(1.0, 100), (2.0, 200)]
    api.points["app.b"] = [(3.0, 150)]
    second = await asyncio.wait_for(reader.next(), 1)
    while not second.results:
        second = await asyncio.wait_for(reader.next(), 1)

    assert sorted(s.target for s in second) == ["app.a", "app.b"]
    third = await asyncio.wait_for(reader.next(), 1)
    assert third.results == []
    await reader.stop()
    await http_client.aclose()

    assert all(r.url.path == "/render" for r in api.requests)
    assert api.requests[-1].url.params["from"] == "200"
