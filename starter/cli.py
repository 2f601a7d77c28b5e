"""
OAP Bootstrap - Command Line Interface

    oap-bootstrap start --config config/application.yml --mode init
    oap-bootstrap modules --catalog my_server.catalog:build_catalog
"""
import importlib
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from module_library.catalog import ModuleCatalog
from observability.logging import setup_logging, shutdown_logging
from observability.tracing import setup_tracing, shutdown_tracing
from starter import __version__
from starter.bootstrap import OAPServerBootstrap, RunningMode
from starter.config import get_config

app = typer.Typer(
    name="oap-bootstrap",
    help="Boot the OAP server modules",
    add_completion=False,
)

console = Console()


def load_catalog(reference: Optional[str], module_group: str, provider_group: str) -> ModuleCatalog:
    """
    Resolve ``package.module:attribute`` to a catalog.

    The attribute may be a ``ModuleCatalog`` or a callable returning one.
    Without a reference, the catalog is built from entry points.
    """
    if not reference:
        return ModuleCatalog.from_entry_points(module_group, provider_group)

    module_path, _, attribute = reference.partition(":")
    if not module_path or not attribute:
        raise typer.BadParameter(f"Catalog reference must look like 'package.module:attribute', got {reference!r}")

    target = getattr(importlib.import_module(module_path), attribute)
    catalog = target if isinstance(target, ModuleCatalog) else target()
    if not isinstance(catalog, ModuleCatalog):
        raise typer.BadParameter(f"{reference} did not produce a ModuleCatalog")
    return catalog


@app.command()
def start(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Application configuration YAML"),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="normal, init or no-init"),
    catalog: Optional[str] = typer.Option(None, "--catalog", help="package.module:attribute of a ModuleCatalog"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Keep running after a normal boot"),
):
    """Boot every configured module."""
    config = get_config()
    if config_file is not None:
        config.config_file = config_file
    if mode is not None:
        config.mode = mode

    setup_logging(config.logging)
    setup_tracing(config.tracing)

    bootstrap = OAPServerBootstrap(
        lambda: load_catalog(catalog, config.module_group, config.provider_group),
        config,
    )
    try:
        exit_code = bootstrap.start()
        if exit_code == 0 and wait and bootstrap.mode is not RunningMode.INIT:
            bootstrap.wait_for_shutdown()
    finally:
        shutdown_tracing()
        shutdown_logging()

    raise typer.Exit(exit_code)


@app.command()
def modules(
    catalog: Optional[str] = typer.Option(None, "--catalog", help="package.module:attribute of a ModuleCatalog"),
):
    """List discovered module definitions and providers."""
    config = get_config()
    discovered = load_catalog(catalog, config.module_group, config.provider_group)

    table = Table(title=f"Discovered modules (oap-bootstrap {__version__})")
    table.add_column("Module", style="cyan")
    table.add_column("Services")
    table.add_column("Providers", style="green")
    table.add_column("Requires")

    providers = discovered.providers()
    for name, module in discovered.module_definitions().items():
        candidates = [p for p in providers if p.module_name == name]
        table.add_row(
            name,
            ", ".join(str(c) for c in module.services) or "-",
            ", ".join(p.name for p in candidates) or "[red]none[/red]",
            "; ".join(
                f"{p.name}: {', '.join(p.required_modules)}" for p in candidates if p.required_modules
            ) or "-",
        )

    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
