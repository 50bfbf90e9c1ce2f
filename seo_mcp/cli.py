"""Typer CLI application for SEO MCP.

Starts the MCP server and offers quick terminal runs of the main
analyzers: page audit, heading outline, robots.txt and sitemap checks.
"""

import asyncio
import json
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from seo_mcp.app import Settings, get_status, load_settings, mask_secret
from seo_mcp.utils.errors import SeoMcpError

console = Console()
app = typer.Typer(
    name="seo-mcp",
    help="SEO MCP -- SEO analysis tools for LLM clients over the Model Context Protocol.",
    add_completion=False,
    no_args_is_help=True,
)

CONFIG_PATH = "config/settings.yaml"
ENV_PATH = ".env"

_SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}


def _setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """Configure logging level and format; records go to stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _load(verbose: bool) -> Settings:
    settings = load_settings(CONFIG_PATH, ENV_PATH)
    _setup_logging(verbose, settings.log_level)
    return settings


def _fail(exc: Exception) -> None:
    console.print("[red]✘[/red] " + str(exc))
    raise typer.Exit(code=1)


def _print_issues(issues: list[dict], title: str = "Issues") -> None:
    if not issues:
        console.print("[green]✔[/green] No issues found.")
        return
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Severity", min_width=9)
    table.add_column("Type", style="cyan", min_width=20)
    table.add_column("Detail", max_width=70)
    for issue in issues:
        severity = issue["severity"]
        style = _SEVERITY_STYLES.get(severity, "")
        table.add_row(f"[{style}]{severity}[/{style}]", issue["type"], issue["detail"])
    console.print(table)


def _add_heading_nodes(branch: Tree, nodes: list[dict]) -> None:
    for node in nodes:
        label = f"[bold]{node['tag'].upper()}[/bold] {node['text'] or '[dim](empty)[/dim]'}"
        _add_heading_nodes(branch.add(label), node["children"])


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------
@app.command()
def serve(
    transport: Optional[str] = typer.Option(None, "--transport", "-t", help="stdio or sse."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port for the SSE transport."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Start the MCP server (stdio by default)."""
    settings = _load(verbose)
    if transport:
        if transport not in ("stdio", "sse"):
            _fail(ValueError(f"Unknown transport: {transport}"))
        settings.server.transport = transport
    if port:
        settings.server.port = port

    from seo_mcp.server import serve as run_server

    _run_async(run_server(settings))


# ------------------------------------------------------------------
# analyze
# ------------------------------------------------------------------
@app.command()
def analyze(
    url: str = typer.Argument(..., help="Page URL to analyze."),
    content: bool = typer.Option(False, "--content", "-c", help="Include word count and readability."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run an on-page SEO analysis and print the score breakdown."""
    settings = _load(verbose)
    from seo_mcp.server import SeoToolbox

    toolbox = SeoToolbox(settings)
    try:
        if as_json:
            result = _run_async(toolbox.analyze_page(url, include_content=content))
            console.print_json(json.dumps(result))
            return
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      console=console, transient=True) as progress:
            progress.add_task(description="Analyzing " + url + "...", total=None)
            result = _run_async(toolbox.analyze_page(url, include_content=content))
    except SeoMcpError as exc:
        _fail(exc)

    score = result["score"]
    console.print(Panel(f"[bold cyan]On-page SEO: {url}[/bold cyan]\nOverall score: [bold]{score['overall']}[/bold]/100"))

    table = Table(title="Score Breakdown", show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan", min_width=15)
    table.add_column("Score", justify="right")
    for name, value in score["breakdown"].items():
        colour = "green" if value >= 80 else "yellow" if value >= 50 else "red"
        table.add_row(name.title(), f"[{colour}]{value}[/{colour}]")
    console.print(table)

    issues = (
        result["title"]["issues"]
        + result["metaDescription"]["issues"]
        + result["canonical"]["issues"]
        + result["openGraph"]["issues"]
        + result["headings"]["issues"]
        + result["images"]["issues"]
    )
    for issue in issues:
        console.print("[yellow]⚠[/yellow] " + issue)
    console.print("[green]✔[/green] Analysis complete.")


# ------------------------------------------------------------------
# headings
# ------------------------------------------------------------------
@app.command()
def headings(
    url: str = typer.Argument(..., help="Page URL to analyze."),
    keyword: Optional[str] = typer.Option(None, "--keyword", "-k", help="Target keyword to look for."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show the heading outline and structural issues of a page."""
    settings = _load(verbose)
    from seo_mcp.server import SeoToolbox

    toolbox = SeoToolbox(settings)
    try:
        result = _run_async(toolbox.analyze_headings(url, keyword))
    except SeoMcpError as exc:
        _fail(exc)

    tree = Tree(f"[bold cyan]{url}[/bold cyan]")
    _add_heading_nodes(tree, result["headingTree"])
    console.print(tree)

    counts = ", ".join(f"{tag.upper()}: {n}" for tag, n in result["counts"].items())
    console.print("Counts: " + (counts or "none"))
    presence = result.get("keywordPresence")
    if presence:
        console.print(
            f"Keyword in H1: {'yes' if presence['inH1'] else 'no'}; "
            f"H2 matches: {len(presence['inH2'])}; total matches: {presence['count']}"
        )
    _print_issues(result["issues"], title="Heading Issues")


# ------------------------------------------------------------------
# robots
# ------------------------------------------------------------------
@app.command()
def robots(
    domain: str = typer.Argument(..., help="Domain whose robots.txt to check."),
    path: Optional[str] = typer.Option(None, "--path", help="Path to test against the rules."),
    user_agent: str = typer.Option("*", "--user-agent", "-u", help="User-agent for the path test."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Analyze a domain's robots.txt."""
    settings = _load(verbose)
    from seo_mcp.server import SeoToolbox

    toolbox = SeoToolbox(settings)
    try:
        result = _run_async(toolbox.analyze_robots_txt(domain, path, user_agent))
    except SeoMcpError as exc:
        _fail(exc)

    console.print(Panel(f"[bold cyan]robots.txt: {domain}[/bold cyan]"))
    if result["exists"]:
        console.print(f"{len(result['rules'])} user-agent group(s), {len(result['sitemaps'])} sitemap(s)")
    test = result.get("testResult")
    if test:
        verdict = "[green]allowed[/green]" if test["allowed"] else "[red]blocked[/red]"
        console.print(f"{test['path']} for {test['userAgent']}: {verdict} ({test['matchingRule'] or 'no matching rule'})")
    _print_issues(result["issues"], title="robots.txt Issues")


# ------------------------------------------------------------------
# sitemap
# ------------------------------------------------------------------
@app.command()
def sitemap(
    url: str = typer.Argument(..., help="Sitemap URL or bare domain."),
    check: bool = typer.Option(False, "--check", help="HEAD-check a sample of URLs."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Analyze an XML sitemap."""
    settings = _load(verbose)
    from seo_mcp.server import SeoToolbox

    toolbox = SeoToolbox(settings)
    try:
        result = _run_async(toolbox.analyze_sitemap(url, check_urls=check))
    except SeoMcpError as exc:
        _fail(exc)

    console.print(Panel(f"[bold cyan]Sitemap: {result['url']}[/bold cyan]"))
    console.print(f"Type: {result['type']}; URLs: [bold]{result['urlCount']}[/bold]")

    table = Table(title="lastmod Distribution", show_header=True, header_style="bold magenta")
    table.add_column("Bucket", style="cyan")
    table.add_column("URLs", justify="right")
    for bucket, count in result["lastmodDistribution"].items():
        table.add_row(bucket, str(count))
    console.print(table)
    _print_issues(result["issues"], title="Sitemap Issues")


# ------------------------------------------------------------------
# schema
# ------------------------------------------------------------------
@app.command()
def schema(
    url: str = typer.Argument(..., help="URL whose structured data to extract."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Extract and validate JSON-LD and microdata on a page."""
    settings = _load(verbose)
    from seo_mcp.server import SeoToolbox

    toolbox = SeoToolbox(settings)
    try:
        result = _run_async(toolbox.extract_schema(url))
    except SeoMcpError as exc:
        _fail(exc)

    summary = result["summary"]
    console.print(Panel(f"[bold cyan]Structured data: {result['url']}[/bold cyan]"))
    console.print(
        f"{summary['totalSchemas']} item(s), {summary['googleEligibleCount']} eligible for rich results"
    )

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Format", style="cyan")
    table.add_column("Type")
    table.add_column("Rich result")
    table.add_column("Errors", justify="right")
    table.add_column("Warnings", justify="right")
    for item in result["schemas"]:
        validation = item["validation"]
        table.add_row(
            item["format"],
            item["type"],
            validation["richResultType"] or "-",
            str(len(validation["errors"])),
            str(len(validation["warnings"])),
        )
    console.print(table)


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------
@app.command()
def status(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show configuration status: config file, API credentials, transport."""
    settings = _load(verbose)
    console.print(Panel("[bold cyan]System Status[/bold cyan]"))

    table = Table(title="Component Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", min_width=20)
    table.add_column("Status", min_width=10)
    table.add_column("Details", max_width=50)

    labels = {"ok": "[green]✔ OK[/green]", "warning": "[yellow]⚠ Warning[/yellow]",
              "error": "[red]✘ Error[/red]"}
    for component, info in get_status(settings, CONFIG_PATH).items():
        table.add_row(component.replace("_", " ").title(), labels[info["status"]], info["details"])
    console.print(table)

    if settings.pagespeed_api_key:
        console.print("PAGESPEED_API_KEY: " + mask_secret(settings.pagespeed_api_key))


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
