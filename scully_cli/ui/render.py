"""Rendering of engine results for the terminal."""

from typing import List

from scully.cache.manager import CacheStats
from scully.models import (
    CodeExample,
    DocumentationArtifact,
    DocumentationSummary,
    PackageMetadata,
    PackageSearchResult,
    ProjectAnalysisResult,
    UsagePattern,
)

from .console import (
    console,
    create_table,
    print_code,
    print_info,
    print_markdown,
    print_panel,
    print_warning,
)

PREVIEW_LENGTH = 500


def render_dependencies(result: ProjectAnalysisResult, detailed: bool = False) -> None:
    """Print a project's declared dependencies and resolution warnings."""
    dependencies = result.manifest.dependencies
    if not dependencies:
        print_info(f"No dependencies found for {result.manifest.name}")
        return

    headers = ["Name", "Pin"]
    if detailed:
        headers += ["Source", "Type", "Description", "Stars"]
    table = create_table(f"📦 Dependencies for {result.manifest.name}", headers)

    resolved = {info.url: info for info in result.dependencies}
    resolved_by_name = {info.name.lower(): info for info in result.dependencies}

    for dep in dependencies:
        row = [dep.name, dep.pin or "-"]
        if detailed:
            info = resolved.get(dep.url) or resolved_by_name.get(dep.name.lower())
            row += [
                dep.url or "-",
                dep.kind.value,
                (info.description if info and info.description else "-"),
                (str(info.stars) if info and info.stars is not None else "-"),
            ]
        table.add_row(*row)

    console.print(table)

    for issue in result.issues:
        print_warning(issue.message)
    if not detailed:
        print_info("Use --detailed for more information")


def render_documentation(doc: DocumentationArtifact, preview: bool = False) -> None:
    """Print documentation, optionally truncated."""
    content = doc.content
    if preview and len(content) > PREVIEW_LENGTH:
        content = f"{content[:PREVIEW_LENGTH]}\n\n... (truncated, {len(doc.content)} total chars)"

    title = f"📚 {doc.package_name}" if preview else f"📚 Documentation for {doc.package_name}"
    print_markdown(content, title=title)
    if doc.url:
        print_info(doc.url, title="🔗 Source")


def render_examples(package_name: str, examples: List[CodeExample]) -> None:
    if not examples:
        print_info(f"No examples found for {package_name}")
        return

    console.print(f"\n[bold]💡 Code Examples for {package_name}[/bold]")
    for index, example in enumerate(examples, start=1):
        console.print(f"\n[bold]{index}. {example.title}[/bold]")
        if example.description:
            console.print(f"   {example.description}")
        console.print(f"   [dim]Source: {example.source}[/dim]")
        if example.language == "markdown":
            print_markdown(example.code)
        else:
            print_code(example.code, language=example.language)


def render_summary(summary: DocumentationSummary) -> None:
    lines = [summary.summary, "", "[bold]✨ Key Features:[/bold]"]
    lines.extend(f"  • {feature}" for feature in summary.key_features or ["-"])
    lines += ["", "[bold]🎯 Common Use Cases:[/bold]"]
    lines.extend(f"  • {use_case}" for use_case in summary.common_use_cases or ["-"])
    lines += ["", f"[bold]📈 Learning Curve:[/bold] {summary.learning_curve.value}"]
    print_panel("\n".join(lines), title=f"📝 Summary for {summary.package_name}")


def render_patterns(package_name: str, patterns: List[UsagePattern]) -> None:
    if not patterns:
        print_info(f"No common patterns found for {package_name}")
        return

    table = create_table(f"🔍 Usage Patterns for {package_name}", ["Pattern", "Uses", "Description", "Examples"])
    for pattern in patterns:
        table.add_row(
            pattern.pattern,
            str(pattern.frequency),
            pattern.description or "",
            "\n".join(pattern.examples[:3]),
        )
    console.print(table)


def render_search_results(query: str, results: List[PackageSearchResult]) -> None:
    if not results:
        print_info(f"No packages match '{query}'")
        return

    table = create_table(f"Packages matching '{query}'", ["Name", "Score", "URL"])
    for result in results:
        table.add_row(result.package.name, f"{result.relevance_score:.2f}", result.package.url)
    console.print(table)


def render_package_info(info: PackageMetadata) -> None:
    table = create_table(f"📦 {info.name}", ["Field", "Value"])
    fields = [
        ("URL", info.url),
        ("Description", info.description),
        ("Latest release", info.version),
        ("License", info.license),
        ("Author", info.author),
        ("Topics", ", ".join(info.tags) if info.tags else None),
        ("Stars", info.stars),
        ("Forks", info.forks),
        ("Last updated", info.last_updated.isoformat() if info.last_updated else None),
        ("README", info.readme_url),
    ]
    for label, value in fields:
        if value is not None:
            table.add_row(label, str(value))
    console.print(table)


def render_cache_stats(stats: CacheStats) -> None:
    table = create_table("Cache", ["Field", "Value"])
    table.add_row("Enabled", "yes" if stats.cache_enabled else "no")
    table.add_row("Directory", stats.directory)
    table.add_row("TTL", f"{stats.cache_expiry:.0f}s")
    table.add_row("Package info entries", str(stats.package_info_count))
    table.add_row("Documentation entries", str(stats.documentation_count))
    table.add_row("Size on disk", stats.total_size_formatted)
    console.print(table)
