"""CLI entry point for docfolio."""

import json
import logging
import sys
from typing import Optional

import click

from .analyzer import ContentAnalyzer
from .config import Config, load_config
from .consolidator import ConsolidationEngine
from .enhancer import ContentEnhancer
from .exceptions import ConfigError, DocfolioError
from .llm import get_llm_provider
from .models import STRATEGY_NAMES
from .search import SearchEngine
from .store import DocumentFolderStore


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load(ctx: click.Context, **overrides) -> Config:
    """Load config for a command, exiting with code 2 when it is invalid."""
    try:
        return load_config(
            vault_path=ctx.obj["vault_path"], verbose=ctx.obj["verbose"], **overrides
        )
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(2)


def _fail(e: DocfolioError) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _all_folders(store: DocumentFolderStore, paths: tuple) -> list:
    if paths:
        return [store.resolve_path(path) for path in paths]
    return store.find_document_folders()


@click.group()
@click.option(
    "--vault-path",
    type=click.Path(),
    default=None,
    help="Root directory of the document folders (default: DOCFOLIO_VAULT_PATH env var)",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging",
)
@click.pass_context
def main(ctx, vault_path, verbose):
    """Organize, deduplicate, consolidate and search document folders.

    Example: docfolio --vault-path ~/Documents/vault search "kubernetes"
    """
    _setup_logging(verbose)
    ctx.obj = {"vault_path": vault_path, "verbose": verbose}


@main.command()
@click.argument("name")
@click.argument("category")
@click.option("--content", default="", help="Initial content of the main file")
@click.pass_context
def create(ctx, name, category, content):
    """Create a document folder NAME inside CATEGORY."""
    config = _load(ctx)
    try:
        folder = DocumentFolderStore(config.vault_path).create_document_folder(name, category, content)
    except DocfolioError as e:
        _fail(e)
    click.echo(f"Created: {folder}")


@main.command()
@click.argument("source")
@click.argument("target")
@click.pass_context
def move(ctx, source, target):
    """Move the document folder SOURCE to TARGET."""
    config = _load(ctx)
    try:
        folder = DocumentFolderStore(config.vault_path).move_document_folder(source, target)
    except DocfolioError as e:
        _fail(e)
    click.echo(f"Moved to: {folder}")


@main.command()
@click.argument("path")
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx, path, yes):
    """Delete the document folder at PATH."""
    config = _load(ctx)
    store = DocumentFolderStore(config.vault_path)
    if not yes and not click.confirm(f"Delete {store.resolve_path(path)}?"):
        click.echo("Aborted.")
        return
    try:
        store.delete_document_folder(path)
    except DocfolioError as e:
        _fail(e)
    click.echo(f"Deleted: {path}")


@main.command(name="list")
@click.option("--category", default=None, help="Only list folders directly in this category")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@click.pass_context
def list_folders(ctx, category, as_json):
    """List document folders."""
    config = _load(ctx)
    store = DocumentFolderStore(config.vault_path)
    try:
        folders = store.list_document_folders(category) if category else store.find_document_folders()
        if as_json:
            _echo_json([store.get_metadata(folder).to_dict() for folder in folders])
            return
    except DocfolioError as e:
        _fail(e)
    for folder in folders:
        click.echo(store.relative_path(folder))
    click.echo(f"\n{len(folders)} document folder(s)")


@main.command()
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@click.pass_context
def analyze(ctx, path, as_json):
    """Show the content analysis of a file or document folder."""
    config = _load(ctx)
    store = DocumentFolderStore(config.vault_path)
    analyzer = ContentAnalyzer.for_store(
        store,
        similarity_threshold=config.similarity_threshold,
        min_content_length=config.min_content_length,
    )
    analysis = analyzer.analyze_content(store.resolve_path(path))
    if analysis is None:
        click.echo(f"Nothing to analyze at {path} (missing, unreadable or too short)", err=True)
        sys.exit(1)
    if as_json:
        _echo_json(analysis.to_dict())
        return
    click.echo(f"File: {analysis.file_path}")
    click.echo(f"Title: {analysis.metadata.suggested_title}")
    click.echo(f"Type: {analysis.content_type} ({analysis.structure.format})")
    click.echo(f"Words: {analysis.word_count}")
    click.echo(f"Topics: {', '.join(analysis.topics)}")
    click.echo(f"Images: {analysis.image_count}")


@main.command()
@click.argument("paths", nargs=-1)
@click.option("--threshold", type=float, default=None, help="Similarity threshold (0-1)")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@click.pass_context
def duplicates(ctx, paths, threshold, as_json):
    """Find exact and similar documents (default: every document folder)."""
    config = _load(ctx, similarity_threshold=threshold)
    store = DocumentFolderStore(config.vault_path)
    analyzer = ContentAnalyzer.for_store(
        store,
        similarity_threshold=config.similarity_threshold,
        min_content_length=config.min_content_length,
    )
    report = analyzer.find_duplicates(_all_folders(store, paths))
    if as_json:
        _echo_json(report.to_dict())
        return
    for group in report.groups:
        click.echo(f"[{group.kind}] {group.similarity:.2f} -> {group.recommended_action}")
        for path in group.paths:
            click.echo(f"    {store.relative_path(path)}")
    for error in report.errors:
        click.echo(f"Warning: {error}", err=True)
    click.echo(
        f"\n{len(report.exact_groups)} exact group(s), {len(report.similar_groups)} "
        f"similar pair(s) in {report.analyzed} document(s)"
    )


@main.command()
@click.argument("paths", nargs=-1)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@click.pass_context
def candidates(ctx, paths, as_json):
    """Suggest groups of documents worth consolidating."""
    config = _load(ctx)
    store = DocumentFolderStore(config.vault_path)
    analyzer = ContentAnalyzer.for_store(
        store,
        similarity_threshold=config.similarity_threshold,
        min_content_length=config.min_content_length,
    )
    found = analyzer.find_consolidation_candidates(_all_folders(store, paths))
    if as_json:
        _echo_json([candidate.to_dict() for candidate in found])
        return
    for candidate in found:
        click.echo(
            f"{candidate.recommended_title} [{candidate.strategy}] "
            f"similarity {candidate.avg_similarity:.2f}, {candidate.total_word_count} words"
        )
        for path in candidate.paths:
            click.echo(f"    {store.relative_path(path)}")
    click.echo(f"\n{len(found)} candidate(s)")


@main.command()
@click.argument("folders", nargs=-1, required=True)
@click.option("--topic", required=True, help="Topic of the consolidated document")
@click.option(
    "--strategy",
    type=click.Choice(STRATEGY_NAMES),
    default="simple",
    help="Merge strategy (default: simple)",
)
@click.option("--category", default=None, help="Category for the consolidated folder")
@click.option("--dry-run", is_flag=True, default=False, help="Show what would be written")
@click.option("--enhance/--no-enhance", default=None, help="Smooth the result with an LLM (default: DOCFOLIO_ENHANCE)")
@click.option(
    "--provider",
    type=click.Choice(["claude", "openai"]),
    default=None,
    help="LLM provider (default: claude, or LLM_PROVIDER env var)",
)
@click.option("--model", default=None, help="LLM model to use for enhancement")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@click.pass_context
def consolidate(ctx, folders, topic, strategy, category, dry_run, enhance, provider, model, as_json):
    """Merge FOLDERS into a new consolidated document folder."""
    config = _load(
        ctx, strategy=strategy, dry_run=dry_run, enhance=enhance, provider=provider, model=model
    )
    store = DocumentFolderStore(config.vault_path)

    enhancer: Optional[ContentEnhancer] = None
    if config.enhance:
        llm = get_llm_provider(config)
        enhancer = ContentEnhancer(llm, max_attempts=config.enhance_max_attempts)

    engine = ConsolidationEngine(store, dry_run=config.dry_run, enhancer=enhancer)
    try:
        result = engine.consolidate_content(list(folders), topic, config.strategy, category)
    except DocfolioError as e:
        _fail(e)

    if as_json:
        _echo_json(result.to_dict())
        return
    prefix = "Would write" if result.dry_run else "Wrote"
    click.echo(f"{prefix}: {result.main_file}")
    click.echo(f"Sources: {', '.join(result.source_documents)}")
    click.echo(f"Images merged: {result.images_merged}")
    if result.dry_run:
        for operation in result.planned_operations:
            click.echo(f"  {operation}")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)


@main.command()
@click.argument("query")
@click.option("--category", default=None, help="Only search inside this category")
@click.option("--limit", type=int, default=None, help="Maximum number of results (default: 10)")
@click.option("--regex", "use_regex", is_flag=True, default=False, help="Treat QUERY as a regex")
@click.option("--case-sensitive", is_flag=True, default=False, help="Match case")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON")
@click.pass_context
def search(ctx, query, category, limit, use_regex, case_sensitive, as_json):
    """Search the main files of all document folders for QUERY."""
    config = _load(ctx, search_limit=limit)
    engine = SearchEngine(DocumentFolderStore(config.vault_path))
    try:
        response = engine.search_documents(
            query,
            category=category,
            limit=config.search_limit,
            use_regex=use_regex,
            case_sensitive=case_sensitive,
        )
    except DocfolioError as e:
        _fail(e)

    if as_json:
        _echo_json(response.to_dict())
        return
    for warning in response.warnings:
        click.echo(f"Warning: {warning}", err=True)
    for i, result in enumerate(response.results, 1):
        click.echo(
            f"{i}. {result.relative_path} (score {result.relevance_score}, "
            f"{result.total_matches} matches)"
        )
        click.echo(f"   {result.highlighted_preview.strip()}")
    click.echo(
        f"\n{response.total_results} result(s) from {response.folders_searched} folder(s)"
    )
