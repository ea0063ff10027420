"""
Scully CLI - Main entry point.

Explore packages of the Swift package ecosystem: list project
dependencies, read documentation, find code examples and usage patterns.
"""

import asyncio
import sys
from typing import Awaitable, Callable, Optional, TypeVar

import typer
import yaml

from scully.config.settings import Settings, load_settings
from scully.core.engine import ScullyEngine
from scully.errors import ScullyError
from scully_cli.core import debug as log
from scully_cli.core.batch import BatchInputError, parse_batch_input
from scully_cli.ui.console import print_error, print_info, print_json, print_success, print_warning
from scully_cli.ui.render import (
    render_cache_stats,
    render_dependencies,
    render_documentation,
    render_examples,
    render_package_info,
    render_patterns,
    render_search_results,
    render_summary,
)

T = TypeVar("T")

OUTPUT_FORMATS = ("table", "json")

app = typer.Typer(
    name="scully",
    help="Scully - Swift package documentation and dependency explorer",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

cache_app = typer.Typer(help="Inspect and manage the local cache", no_args_is_help=True)
app.add_typer(cache_app, name="cache")


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a scully YAML config file",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable verbose debug logging to the log file",
    ),
) -> None:
    """Global options."""
    if debug:
        log.enable_debug()
        print_info(f"Debug mode enabled - logging to {log.get_log_file()}")
    ctx.obj = {"config_path": config_path}


def _load_settings(ctx: typer.Context) -> Settings:
    config_path = (ctx.obj or {}).get("config_path")
    log.debug("Loading settings from %s", config_path or "default locations")
    try:
        return load_settings(config_path)
    except FileNotFoundError:
        print_error(f"Config file not found: {config_path}")
        raise typer.Exit(1)
    except (yaml.YAMLError, TypeError, ValueError) as e:
        print_error(f"Error loading config: {e}")
        raise typer.Exit(1)


def _check_format(output_format: str) -> None:
    if output_format not in OUTPUT_FORMATS:
        print_error(f"Unknown format: {output_format} (expected one of {', '.join(OUTPUT_FORMATS)})")
        raise typer.Exit(1)


def _run(ctx: typer.Context, command: str, operation: Callable[[ScullyEngine], Awaitable[T]]) -> T:
    """Run one engine operation, mapping library errors to exit code 1."""
    settings = _load_settings(ctx)

    async def runner() -> T:
        async with ScullyEngine(settings) as engine:
            return await operation(engine)

    try:
        return asyncio.run(runner())
    except ScullyError as e:
        log.log_error(command, e)
        print_error(str(e))
        raise typer.Exit(1)
    except Exception:
        log.exception("Unexpected error in %s", command)
        raise


@app.command(name="list")
def list_dependencies(
    ctx: typer.Context,
    path: str = typer.Option(".", "--path", "-p", help="Path to the project directory"),
    detailed: bool = typer.Option(False, "--detailed", help="Show detailed information"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
) -> None:
    """List dependencies in a project."""
    _check_format(output_format)
    log.log_command("list", {"path": path, "detailed": detailed, "format": output_format})

    result = _run(ctx, "list", lambda engine: engine.list_dependencies(path))

    if output_format == "json":
        print_json(result.to_dict())
    else:
        render_dependencies(result, detailed=detailed)


@app.command()
def docs(
    ctx: typer.Context,
    package_name: Optional[str] = typer.Argument(
        None,
        help="Package name (not needed when piping JSON or using --project-deps)",
    ),
    version: Optional[str] = typer.Option(None, "--version", help="Specific version or ref"),
    project_deps: bool = typer.Option(
        False,
        "--project-deps",
        help="Fetch docs for all dependencies of the project",
    ),
    path: str = typer.Option(".", "--path", "-p", help="Project directory for local documentation"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
) -> None:
    """Access documentation for a package.

    \b
    Single package:       scully docs Alamofire
    Project dependencies: scully docs --project-deps
    Piped JSON:           smith dependencies --format=json | scully docs
    """
    _check_format(output_format)
    log.log_command("docs", {"package": package_name, "version": version, "project_deps": project_deps})

    if project_deps:
        print_info("Reading project dependencies...")
        result = _run(ctx, "docs", lambda engine: engine.fetch_project_documentation(path))
    elif package_name:
        doc = _run(
            ctx,
            "docs",
            lambda engine: engine.fetch_documentation(package_name, version=version, project_path=path),
        )
        if output_format == "json":
            print_json(doc.to_dict())
        else:
            render_documentation(doc)
        return
    elif not sys.stdin.isatty():
        try:
            names = parse_batch_input(sys.stdin.read())
        except BatchInputError as e:
            log.warning("Rejected batch input: %s", e)
            print_error(str(e))
            print_info("Expected JSON from: smith dependencies --format=json")
            raise typer.Exit(2)
        log.info("Batch input: %d packages", len(names))
        print_info(f"Fetching documentation for {len(names)} packages...")
        result = _run(ctx, "docs", lambda engine: engine.fetch_documentation_batch(names, project_path=path))
    else:
        print_error("Package name required")
        print_info("Usage: scully docs <package-name> | scully docs --project-deps | <json> | scully docs")
        raise typer.Exit(2)

    if output_format == "json":
        print_json(result.to_dict())
        return

    if not result.documents and not result.issues:
        print_info("No dependencies found")
        return
    for doc in result.documents:
        render_documentation(doc, preview=True)
    for issue in result.issues:
        print_warning(issue.message)
    print_success(f"Documentation fetch complete ({len(result.documents)} packages)")


@app.command()
def examples(
    ctx: typer.Context,
    package_name: str = typer.Argument(..., help="Package name"),
    filter: Optional[str] = typer.Option(None, "--filter", help="Filter by keyword"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Maximum number of examples"),
) -> None:
    """Find code examples for a package."""
    log.log_command("examples", {"package": package_name, "filter": filter, "limit": limit})
    found = _run(ctx, "examples", lambda engine: engine.find_examples(package_name, filter=filter, limit=limit))
    render_examples(package_name, found)


@app.command()
def summary(
    ctx: typer.Context,
    package_name: str = typer.Argument(..., help="Package name"),
    version: Optional[str] = typer.Option(None, "--version", help="Specific version or ref"),
) -> None:
    """Generate a summary of package documentation."""
    log.log_command("summary", {"package": package_name, "version": version})
    result = _run(ctx, "summary", lambda engine: engine.generate_summary(package_name, version=version))
    render_summary(result)


@app.command()
def patterns(
    ctx: typer.Context,
    package_name: str = typer.Argument(..., help="Package name"),
    threshold: int = typer.Option(2, "--threshold", "-t", min=1, help="Minimum frequency threshold"),
) -> None:
    """Extract common usage patterns for a package."""
    log.log_command("patterns", {"package": package_name, "threshold": threshold})
    found = _run(ctx, "patterns", lambda engine: engine.extract_patterns(package_name, threshold=threshold))
    render_patterns(package_name, found)


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search text"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum number of results"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
) -> None:
    """Search the package index by name."""
    _check_format(output_format)
    log.log_command("search", {"query": query, "limit": limit})
    results = _run(ctx, "search", lambda engine: engine.search_packages(query, limit=limit))

    if output_format == "json":
        print_json([r.to_dict() for r in results])
    else:
        render_search_results(query, results)


@app.command()
def info(
    ctx: typer.Context,
    package_name: str = typer.Argument(..., help="Package name"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
) -> None:
    """Show repository metadata for a package."""
    _check_format(output_format)
    log.log_command("info", {"package": package_name})
    metadata = _run(ctx, "info", lambda engine: engine.get_package_info(package_name))

    if output_format == "json":
        print_json(metadata.to_dict())
    else:
        render_package_info(metadata)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show cache statistics."""

    async def stats(engine: ScullyEngine):
        return engine.cache_stats()

    render_cache_stats(_run(ctx, "cache stats", stats))


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Delete every cached entry."""
    _run(ctx, "cache clear", lambda engine: engine.clear_cache())
    print_success("Cache cleared")


@cache_app.command("prune")
def cache_prune(ctx: typer.Context) -> None:
    """Delete expired cache entries."""
    removed = _run(ctx, "cache prune", lambda engine: engine.prune_cache())
    print_success(f"Removed {removed} expired entries")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
