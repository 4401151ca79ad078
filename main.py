#!/usr/bin/env python3
"""apidoc-infer - Entry point."""
import logging
import sys
from pathlib import Path

import click
from colorama import Fore, Style, init

from apidoc_infer import __version__
from apidoc_infer.builder.document_builder import DocumentBuilder
from apidoc_infer.capture.repository import CapturedResponseRepository
from apidoc_infer.discovery.manifest import ManifestLoader
from apidoc_infer.errors import AnalysisError
from apidoc_infer.exporter.json_exporter import JsonExporter
from apidoc_infer.introspection.ast_cache import AstCache
from apidoc_infer.introspection.source_index import SourceIndex
from apidoc_infer.merge.result_merger import MergePolicy, ResultMerger
from apidoc_infer.plugins.registry import PluginRegistry
from config import app_config

# Initialize colorama
init(autoreset=True)


def print_banner():
    """Print application banner."""
    print(f"{Fore.CYAN}{'=' * 44}")
    print(f"{Fore.CYAN}║   {Fore.WHITE}apidoc-infer{Fore.CYAN}                         ║")
    print(f"{Fore.CYAN}║   {Fore.WHITE}Static API schema inference{Fore.CYAN}          ║")
    print(f"{Fore.CYAN}{'=' * 44}{Style.RESET_ALL}")
    print()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """apidoc-infer - Infer API request/response schemas from source."""
    configure_logging(verbose)


@cli.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Application source root",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    default=None,
    help="Output JSON file (default: <output_dir>/openapi.json)",
)
@click.option(
    "--policy",
    type=click.Choice([p.value for p in MergePolicy]),
    default=None,
    help="Which of static analysis and captures wins on conflict",
)
@click.option("--fill-depth", type=int, default=None, help="Object depth filled from the losing tier")
@click.option(
    "--captures",
    type=click.Path(file_okay=False),
    default=None,
    help="Runtime capture directory",
)
@click.option("--openapi-version", default=None, help="Output dialect (3.0.3 or 3.1.0)")
@click.option("--diagnostics", is_flag=True, help="Embed diagnostics in the output")
def generate(manifest, root, output, policy, fill_depth, captures, openapi_version, diagnostics):
    """Generate a document from a route manifest."""
    print_banner()
    settings = app_config.analysis

    try:
        entry_points = ManifestLoader().load(Path(manifest))
        index = SourceIndex(
            Path(root),
            exclude_patterns=settings.exclude_patterns,
            ast_cache=AstCache(ttl=app_config.cache.ttl, max_entries=app_config.cache.max_entries),
        )
        capture_dir = captures or app_config.capture.storage_path
        merger = ResultMerger(
            policy=policy or settings.merge_policy,
            fill_depth=fill_depth if fill_depth is not None else settings.fill_depth,
            inline_captured_examples=settings.inline_captured_examples,
        )
        builder = DocumentBuilder(
            index,
            plugins=PluginRegistry.with_defaults(with_captures=capture_dir is not None),
            merger=merger,
            captures=CapturedResponseRepository(Path(capture_dir)) if capture_dir else None,
            title=settings.title,
            version=settings.version,
            openapi_version=openapi_version or settings.openapi_version,
            rule_overrides=settings.rule_overrides,
        )
        document = builder.build(entry_points)
    except AnalysisError as e:
        click.echo(f"{Fore.RED}❌ {e}")
        sys.exit(1)

    output_file = Path(output) if output else Path(app_config.output_dir) / "openapi.json"
    JsonExporter(include_diagnostics=diagnostics).export(output_file, document)

    click.echo(f"{Fore.GREEN}✅ {len(document.operations())} operations, "
               f"{len(document.components.schemas)} components")
    for message in document.diagnostics:
        click.echo(f"{Fore.YELLOW}⚠️  {message}")
    click.echo(f"{Fore.GREEN}Written to {output_file}")


@cli.command()
def plugins():
    """List registered plugins and their capabilities."""
    print_banner()

    registry = PluginRegistry.with_defaults()
    click.echo(f"{Fore.YELLOW}Registered plugins")
    click.echo(f"{Fore.YELLOW}{'=' * 30}")
    for plugin in registry.plugins():
        capabilities = ", ".join(c.value for c in registry.capabilities_of(plugin))
        click.echo(f"{Fore.WHITE}{plugin.plugin_name:<28}{Fore.CYAN}{plugin.priority:>4}  {Style.RESET_ALL}{capabilities}")


@cli.command()
@click.option(
    "--captures",
    type=click.Path(file_okay=False),
    default=None,
    help="Runtime capture directory",
)
@click.option("--clear", is_flag=True, help="Delete every capture file")
def captures(captures, clear):
    """Show capture store statistics."""
    print_banner()

    capture_dir = captures or app_config.capture.storage_path
    if not capture_dir:
        click.echo(f"{Fore.RED}❌ No capture directory (use --captures or APIDOC_CAPTURE_DIR)")
        sys.exit(1)

    repository = CapturedResponseRepository(Path(capture_dir))
    if clear:
        removed = repository.clear()
        click.echo(f"{Fore.GREEN}✅ Removed {removed} capture files")
        return

    stats = repository.get_statistics()
    click.echo(f"{Fore.YELLOW}Capture store: {stats['storage_path']}")
    click.echo(f"{Fore.YELLOW}{'=' * 30}")
    click.echo(f"Files:     {stats['total_files']}")
    click.echo(f"Responses: {stats['total_responses']}")
    for method, count in sorted(stats["by_method"].items()):
        click.echo(f"  {Fore.CYAN}{method:<8}{Style.RESET_ALL}{count}")
    for status, count in sorted(stats["by_status"].items()):
        click.echo(f"  {Fore.CYAN}{status:<8}{Style.RESET_ALL}{count}")


if __name__ == "__main__":
    cli()
