"""Entry point for the Gita RAG application."""

import asyncio
import json
import logging

import click

from gita_rag.config import AppConfig, configure_logging, load_config
from gita_rag.services import build_services

logger = logging.getLogger(__name__)


async def _ingest(config: AppConfig, source: str | None, force_reparse: bool, force_reindex: bool) -> dict:
    services = build_services(config)
    try:
        report = await services.pipeline.run(
            source_path=source, force_reparse=force_reparse, force_reindex=force_reindex
        )
        return report.model_dump()
    finally:
        await services.close()


async def _query(config: AppConfig, question: str, language: str) -> dict:
    services = build_services(config)
    try:
        answer = await services.orchestrator.query(question, language)
        return answer.model_dump(mode="json")
    finally:
        await services.close()


async def _recreate(config: AppConfig) -> None:
    services = build_services(config)
    try:
        await services.store.recreate_collection()
    finally:
        await services.close()


async def _stats(config: AppConfig) -> dict:
    services = build_services(config)
    try:
        report = await services.orchestrator.health()
        return report.model_dump(mode="json")
    finally:
        await services.close()


@click.group()
@click.option("--config", "config_path", default="config.yaml", show_default=True, help="YAML configuration file.")
@click.pass_context
def main(ctx: click.Context, config_path: str) -> None:
    """Ingest the Bhagavad Gita and answer questions about it."""
    config = load_config(config_path)
    configure_logging(config.logging)
    ctx.obj = config


@main.command()
@click.option("--source", default=None, help="Document to ingest (defaults to storage.source_path).")
@click.option("--force-reparse", is_flag=True, help="Ignore the saved archive and re-parse the source.")
@click.option("--force-reindex", is_flag=True, help="Recreate the collection before indexing.")
@click.pass_obj
def ingest(config: AppConfig, source: str | None, force_reparse: bool, force_reindex: bool) -> None:
    """Parse the source document and index its nodes."""
    report = asyncio.run(_ingest(config, source, force_reparse, force_reindex))
    click.echo(json.dumps(report, indent=2))


@main.command()
@click.argument("question")
@click.option("--language", default="en", show_default=True, help="Response language code.")
@click.pass_obj
def query(config: AppConfig, question: str, language: str) -> None:
    """Ask a question and print the answer with its sources."""
    result = asyncio.run(_query(config, question, language))
    click.echo(json.dumps(result, indent=2, ensure_ascii=False))


@main.command("recreate-collection")
@click.confirmation_option(prompt="This discards every indexed point. Continue?")
@click.pass_obj
def recreate_collection(config: AppConfig) -> None:
    """Delete and recreate the vector collection."""
    asyncio.run(_recreate(config))
    click.echo(f"Recreated collection '{config.vector_store.collection_name}'")


@main.command()
@click.pass_obj
def stats(config: AppConfig) -> None:
    """Print collection and collaborator health."""
    click.echo(json.dumps(asyncio.run(_stats(config)), indent=2))


if __name__ == "__main__":
    main()
