import asyncio
import json
import sys
from typing import List, Optional

import typer
from loguru import logger

from graphite_io.codecs import GraphiteProtocol
from graphite_io.config import get_settings
from graphite_io.models import DataPoints, GraphiteRecord
from graphite_io.publisher import GraphitePublisher
from graphite_io.render.query import GraphiteQuery
from graphite_io.render.service import GraphiteRenderApiService

app = typer.Typer(help="Graphite CLI (send records to Carbon, query the render API)")


def parse_tags(tags: Optional[List[str]]) -> dict:
    """['k=v', ...] -> {'k': 'v', ...}"""
    result = {}
    for tag in tags or []:
        key, sep, value = tag.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Tags must be given as key=value, got {tag!r}")
        result[key.strip()] = value.strip()
    return result


def series_to_json(series: List[DataPoints]) -> str:
    return json.dumps([s.model_dump(mode="json", by_alias=True) for s in series], indent=2)


async def _send(record: GraphiteRecord, protocol: Optional[GraphiteProtocol]) -> None:
    settings = get_settings()
    publisher = GraphitePublisher(
        settings.host,
        settings.port,
        protocol=protocol or settings.protocol,
        publishers=1,
        connect_timeout=settings.connect_timeout,
    )
    async with publisher:
        await publisher.publish([record])


async def _render(query: GraphiteQuery) -> List[DataPoints]:
    settings = get_settings()
    service = GraphiteRenderApiService(
        settings.render_url, basic_auth=settings.basic_auth, timeout=settings.http_timeout
    )
    try:
        return await service.execute(query)
    finally:
        await service.close()


@app.command()
def send(
    path: str,
    value: float,
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="key=value, repeatable"),
    protocol: Optional[GraphiteProtocol] = typer.Option(None, help="Overrides GRAPHITE_PROTOCOL"),
):
    """Send a single record to Carbon."""
    try:
        record = GraphiteRecord(path=path, value=value, tags=parse_tags(tag))
        asyncio.run(_send(record, protocol))
        logger.success(f"Sent {path}={value}")
    except typer.BadParameter:
        raise
    except Exception as e:
        logger.error(f"Failed to send the record: {e}")
        sys.exit(1)


@app.command()
def render(
    target: List[str],
    from_: Optional[str] = typer.Option(None, "--from", help="e.g. -10min or an epoch"),
    until: Optional[str] = typer.Option(None, "--until"),
    null_points: bool = typer.Option(False, "--null-points", help="Keep null data points"),
):
    """Run a render query and print the series as JSON."""
    try:
        query = (
            GraphiteQuery.of(*target)
            .with_from(from_)
            .with_until(until)
            .with_no_null_points(not null_points)
        )
        logger.info(f"Querying {query.build()}")
        series = asyncio.run(_render(query))
        typer.echo(series_to_json(series))
    except Exception as e:
        logger.error(f"Failed to run the render query: {e}")
        sys.exit(1)


if __name__ == "__main__":
    app()
