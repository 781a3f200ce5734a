"""Command-line interface for the document search engine."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer

from .config.loader import DEFAULT_CONFIG_PATH, load_config, load_profiles

app = typer.Typer(
    name="docscout",
    help="Scout-based search over a document corpus.",
    add_completion=False,
)


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Natural-language query")],
    corpus: Annotated[
        Path,
        typer.Option("--corpus", help="JSON corpus file for the in-memory store"),
    ] = None,
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
    intent: Annotated[
        str,
        typer.Option("--intent", help="Intent hint, e.g. timeline or compliance"),
    ] = None,
    scope: Annotated[
        str,
        typer.Option("--scope", help="Scope: narrow, focused, broad or exhaustive"),
    ] = None,
    priority: Annotated[
        str,
        typer.Option("--priority", help="Priority: urgent, high, normal or background"),
    ] = None,
    depth: Annotated[
        int,
        typer.Option("--depth", help="Relationship traversal depth"),
    ] = None,
    time_limit: Annotated[
        int,
        typer.Option("--time-limit", help="Time budget in milliseconds"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json"),
    ] = "text",
):
    """
    Run one search and print the result.

    Examples:

        # Search a local corpus
        docscout search "who is negotiating the TechCorp acquisition" --corpus corpus.json

        # Urgent, focused search
        docscout search "TechCorp contract" --scope focused --priority urgent

        # Full analysis as JSON
        docscout search "GDPR exposure" --scope exhaustive --priority background --format json
    """
    if output_format not in ("text", "json"):
        typer.echo("Error: Format must be one of: text, json", err=True)
        raise typer.Exit(1)

    asyncio.run(_search_async(
        query=query,
        corpus=corpus,
        profile=profile,
        intent=intent,
        scope=scope,
        priority=priority,
        depth=depth,
        time_limit=time_limit,
        output_format=output_format,
    ))


async def _search_async(
    query: str,
    corpus: Path | None,
    profile: str | None,
    intent: str | None,
    scope: str | None,
    priority: str | None,
    depth: int | None,
    time_limit: int | None,
    output_format: str,
):
    """Async implementation of search."""
    from .config.factory import create_search_engine, create_store
    from .search import InvalidQueryError, SearchError, SearchQuery

    config = load_config(profile)
    store = create_store(config.store, corpus_path=corpus)

    try:
        request = SearchQuery(
            query=query,
            intent_hint=intent,
            scope_hint=scope,
            priority_hint=priority,
            relationship_depth=depth,
            time_limit_ms=time_limit,
        )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    try:
        if hasattr(store, "__aenter__"):
            async with store:
                engine = create_search_engine(config, store=store)
                response = await engine.search(request)
        else:
            engine = create_search_engine(config, store=store)
            response = await engine.search(request)
    except InvalidQueryError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except SearchError as e:
        typer.echo(f"Search failed: {e}", err=True)
        raise typer.Exit(2)

    if output_format == "json":
        typer.echo(response.model_dump_json(by_alias=True, indent=2))
        return

    partial = " (partial)" if response.partial else ""
    typer.echo(
        f"Query {response.query_id}{partial}: {response.scouts_deployed} scouts, "
        f"{response.documents_analyzed} documents, confidence {response.confidence_score:.2f}, "
        f"{response.processing_time_ms}ms\n"
    )

    if not response.direct_matches:
        typer.echo("No matches found.")
    for i, match in enumerate(response.direct_matches[:10], 1):
        typer.echo(f"{i}. [{match.document_id}] ({match.match_type}, {match.relevance_score:.2f})")
        typer.echo(f"   {match.excerpt}")

    if response.entities:
        typer.echo("\nEntities:")
        for entity in response.entities[:10]:
            typer.echo(
                f"  {entity.name} ({entity.entity_type}, {entity.confidence:.2f}, "
                f"{len(entity.document_references)} docs)"
            )

    if response.relationships:
        typer.echo("\nRelationships:")
        for r in response.relationships[:10]:
            typer.echo(f"  {r.from_entity} --{r.relationship_type}--> {r.to_entity} ({r.confidence:.2f})")

    if response.timeline:
        typer.echo("\nTimeline:")
        for event in response.timeline:
            typer.echo(f"  {event.timestamp.date().isoformat()} [{event.event_type}] {event.description}")

    if response.recommendations:
        typer.echo("\nRecommendations:")
        for rec in response.recommendations:
            typer.echo(f"  [{rec.priority}] {rec.description}")

    if response.dead_end_paths:
        typer.echo(f"\nDead ends ({response.dead_ends_encountered}):")
        for path in response.dead_end_paths[:10]:
            typer.echo(f"  {path}")


@app.command()
def plan(
    query: Annotated[str, typer.Argument(help="Natural-language query")],
    corpus: Annotated[
        Path,
        typer.Option("--corpus", help="JSON corpus file for the in-memory store"),
    ] = None,
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
    scope: Annotated[
        str,
        typer.Option("--scope", help="Scope: narrow, focused, broad or exhaustive"),
    ] = None,
    priority: Annotated[
        str,
        typer.Option("--priority", help="Priority: urgent, high, normal or background"),
    ] = None,
):
    """
    Show how a query would be classified and planned, without running scouts.

    Examples:

        docscout plan "who is negotiating the TechCorp acquisition" --scope focused --priority urgent
    """
    asyncio.run(_plan_async(query, corpus, profile, scope, priority))


async def _plan_async(
    query: str,
    corpus: Path | None,
    profile: str | None,
    scope: str | None,
    priority: str | None,
):
    """Async implementation of plan."""
    from .config.factory import create_store
    from .orchestration import DeploymentPlanner, QueryClassifier

    config = load_config(profile)
    store = create_store(config.store, corpus_path=corpus)
    classified = QueryClassifier(config.classifier).classify(
        query, scope_hint=scope, priority_hint=priority
    )
    planner = DeploymentPlanner(config.planner)

    if hasattr(store, "__aenter__"):
        async with store:
            deployment = await planner.plan(classified, store)
    else:
        deployment = await planner.plan(classified, store)

    output = {
        "query": classified.original_query,
        "intent": classified.intent.value,
        "scope": classified.scope.value,
        "priority": classified.priority.value,
        "context_hints": list(classified.context_hints),
        "plan": deployment.to_dict(),
    }
    typer.echo(json.dumps(output, indent=2))


@app.command()
def profiles():
    """List available configuration profiles."""
    try:
        configured = load_profiles(DEFAULT_CONFIG_PATH)
    except FileNotFoundError:
        typer.echo(f"Config file {DEFAULT_CONFIG_PATH} not found.", err=True)
        raise typer.Exit(1)

    typer.echo("Available profiles:\n")
    for name, profile in configured.items():
        typer.echo(f"  {name}")
        typer.echo(f"    Store: {profile.store.backend}")
        typer.echo(
            f"    Cache: {'on' if profile.cache.enabled else 'off'} "
            f"({profile.cache.max_entries} entries, ttl {profile.cache.ttl_seconds})"
        )
        typer.echo(f"    Max concurrent scouts: {profile.scouts.max_concurrent_scouts}")
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
