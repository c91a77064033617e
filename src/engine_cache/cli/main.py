import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from engine_cache.cli.utils import load_object_from_path, parse_variables, render_path
from engine_cache.defaults import BUNDLED_ENGINES
from engine_cache.errors import EngineCacheError
from engine_cache.registry import EngineRegistry
from engine_cache.type_guards import is_engine
from engine_cache.utilities.logger import configure_library_logging

app = typer.Typer(help="engine-cache CLI")

_console = Console()
_err_console = Console(stderr=True)


def build_registry(load: list[str] | None = None) -> EngineRegistry:
    """Registry with the bundled engines plus anything named by ``--load``.

    ``--load module:attr`` accepts an engine mapping, or ``ext=module:attr`` for
    a single engine definition.
    """
    registry = EngineRegistry().load(BUNDLED_ENGINES)
    for spec in load or []:
        ext, sep, target = spec.partition("=")
        if sep:
            registry.register(ext, load_object_from_path(target))
            continue
        loaded = load_object_from_path(spec)
        if is_engine(loaded):
            raise ValueError(
                f"'{spec}' is a single engine; register it with 'ext={spec}'"
            )
        registry.load(loaded)
    return registry


@app.command()
def render(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Template file to render"),
    ext: str = typer.Option(None, "--ext", "-e", help="Engine extension (defaults to the file suffix)"),
    var: list[str] = typer.Option(None, "--var", "-v", help="Context variable as key=value"),
    load: list[str] = typer.Option(None, "--load", "-l", help="Extra engines: module:mapping or ext=module:engine"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the result here instead of stdout"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """
    Render a template file through the engine registered for its extension.
    """
    if verbose:
        configure_library_logging(level=logging.DEBUG)

    try:
        registry = build_registry(load)
        context = parse_variables(var)
    except (ValueError, ImportError, AttributeError) as exc:
        _err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=2)

    key = ext or path.suffix
    engine = registry.get(key)
    if engine is None:
        _err_console.print(f"[red]Error:[/red] no engine registered for {key!r}")
        raise typer.Exit(code=1)

    try:
        content = asyncio.run(render_path(engine, path, context))
    except (EngineCacheError, OSError) as exc:
        _err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)

    if output is not None:
        output.write_text(content)
        _err_console.print(f"Wrote {output}")
    else:
        typer.echo(content, nl=False)


@app.command()
def engines(
    load: list[str] = typer.Option(None, "--load", "-l", help="Extra engines: module:mapping or ext=module:engine"),
):
    """
    List registered engines.
    """
    try:
        registry = build_registry(load)
    except (ValueError, ImportError, AttributeError) as exc:
        _err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=2)

    table = Table(title="Registered engines")
    table.add_column("Extension", style="cyan")
    table.add_column("Name")
    table.add_column("compile")
    table.add_column("render_file")

    for key, engine in registry.get().items():
        caps = engine.capabilities
        table.add_row(
            key,
            engine.name,
            "yes" if caps.has_compile else "-",
            "yes" if caps.render_file is not None else "-",
        )
    _console.print(table)


if __name__ == "__main__":
    app()
