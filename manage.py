import asyncio
import os

import click

from sales_coach.config import get_settings
from sales_coach.dependencies import build_container
from sales_coach.errors import ValidationFailed


@click.group()
def cli():
    """Sales coach management tool"""
    pass


@cli.command()
@click.argument('topic_id')
@click.option('--path', default='./data/documents', help='File or directory to ingest')
@click.option('--concurrency', default=None, type=int, help='Parallel chunk inserts (1 = stop at first failure)')
def ingest(topic_id, path, concurrency):
    """Chunk, embed and store documents as sections of a topic"""
    container = build_container(get_settings())
    pipeline = container.ingestion

    if os.path.isdir(path):
        reports = asyncio.run(pipeline.ingest_directory(topic_id, path))
    else:
        with open(path, 'rb') as f:
            data = f.read()
        content = pipeline.parser.parse(data, os.path.basename(path))
        try:
            reports = {path: asyncio.run(pipeline.ingest(topic_id, content, concurrency=concurrency))}
        except ValidationFailed as e:
            raise click.ClickException(f"{path}: {e.message}")

    for name, report in reports.items():
        state = "ok" if report.succeeded else "FAILED"
        print(f"{name}: {report.inserted_count}/{report.total_chunks} sections [{state}]")


@cli.command()
@click.argument('topic_id')
@click.argument('query')
@click.option('--limit', default=5, help='Number of sections to retrieve')
def query(topic_id, query, limit):
    """Ask a question against a topic's sections"""
    container = build_container(get_settings())

    async def run():
        topic = await container.database.select_one("topics", {"id": topic_id}, not_found="Topic not found")
        return await container.retrieval.answer(query, topic_id, topic.get("title") or "", limit=limit)

    result = asyncio.run(run())
    print(f"\nAnswer:\n{result['answer']}")
    print("\nSources:")
    for section in result['context']:
        print(f"  - {section['metadata'].get('title', '')} (similarity {section['similarity']:.3f})")


@cli.command()
@click.option('--host', default='0.0.0.0')
@click.option('--port', default=8000, type=int)
@click.option('--reload', is_flag=True, help='Restart on code changes')
def serve(host, port, reload):
    """Run the API server"""
    import uvicorn

    uvicorn.run("sales_coach.main:app", host=host, port=port, reload=reload)


if __name__ == '__main__':
    cli()
