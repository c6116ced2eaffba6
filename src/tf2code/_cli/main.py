import io
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tf2code._convert import Options, build_forest, convert
from tf2code._errors import ConvertError, Tf2CodeError
from tf2code._gen import VALID_LANGUAGES, PythonOptions, TargetLanguage, TypeScriptOptions
from tf2code._ir import load_provider_info_source
from tf2code._module import ModuleStorage, ModuleTree

from .config import ConfigError, Tf2CodeConfig, get_config

app = typer.Typer(no_args_is_help=True)

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Convert Terraform configurations into Pulumi programs."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _load_config() -> Tf2CodeConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


T = TypeVar("T")


def _pick(flag: T | None, configured: T | None, default: T) -> T:
    if flag is not None:
        return flag
    if configured is not None:
        return configured
    return default


def _options(  # noqa: PLR0913
    config: Tf2CodeConfig,
    *,
    path: Path | None,
    language: str | None,
    provider_info: Path | None,
    allow_missing_providers: bool | None,
    allow_missing_variables: bool | None,
    allow_missing_comments: bool | None,
) -> Options:
    info_path = _pick(provider_info, config.provider_info, None)
    source = None
    if info_path is not None:
        try:
            source = load_provider_info_source(info_path)
        except Tf2CodeError as e:
            err_console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e
    return Options(
        path=str(_pick(path, config.path, Path("."))),
        target_language=_pick(language, config.target_language, TargetLanguage.TYPESCRIPT),
        provider_info_source=source,
        allow_missing_providers=_pick(allow_missing_providers, config.allow_missing_providers, False),  # noqa: FBT003
        allow_missing_variables=_pick(allow_missing_variables, config.allow_missing_variables, False),  # noqa: FBT003
        allow_missing_comments=_pick(allow_missing_comments, config.allow_missing_comments, False),  # noqa: FBT003
    )


@app.command(name="convert")
def convert_command(  # noqa: PLR0913
    path: Annotated[
        Path | None,
        typer.Argument(help="Directory of the root Terraform module (default: current directory)"),
    ] = None,
    *,
    language: Annotated[
        str | None,
        typer.Option("-l", "--language", help=f"Target language: {', '.join(VALID_LANGUAGES)}"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Write the program to this file instead of stdout"),
    ] = None,
    provider_info: Annotated[
        Path | None,
        typer.Option("--provider-info", help="TOML or JSON file with provider schema information"),
    ] = None,
    filter_resource_names: Annotated[
        bool | None,
        typer.Option("--filter-resource-names/--keep-resource-names", help="Remove resource name properties"),
    ] = None,
    resource_name_property: Annotated[
        str | None,
        typer.Option("--resource-name-property", help="Name property to remove (default: auto-named properties)"),
    ] = None,
    annotate_locations: Annotated[
        bool | None,
        typer.Option("--annotate-locations/--no-annotate-locations", help="Comment every node with its origin"),
    ] = None,
    allow_missing_providers: Annotated[
        bool | None,
        typer.Option("--allow-missing-providers/--strict-providers", help="Use placeholders for unknown providers"),
    ] = None,
    allow_missing_variables: Annotated[
        bool | None,
        typer.Option("--allow-missing-variables/--strict-variables", help="Use placeholders for undeclared variables"),
    ] = None,
    allow_missing_comments: Annotated[
        bool | None,
        typer.Option("--allow-missing-comments/--strict-comments", help="Continue when comments cannot be recovered"),
    ] = None,
    sdk_version: Annotated[
        str | None,
        typer.Option("--sdk-version", help="Version of the target Pulumi SDK"),
    ] = None,
    prompt_data_sources: Annotated[
        bool | None,
        typer.Option("--prompt-data-sources/--output-data-sources", help="TypeScript: treat data sources as plain values"),
    ] = None,
) -> None:
    """Convert a Terraform module tree into a program."""
    config = _load_config()
    options = _options(
        config,
        path=path,
        language=language,
        provider_info=provider_info,
        allow_missing_providers=allow_missing_providers,
        allow_missing_variables=allow_missing_variables,
        allow_missing_comments=allow_missing_comments,
    )
    target_options: TypeScriptOptions | PythonOptions | None = None
    if options.target_language == TargetLanguage.TYPESCRIPT:
        target_options = TypeScriptOptions(
            use_prompt_data_sources=_pick(prompt_data_sources, config.prompt_data_sources, False),  # noqa: FBT003
        )
    elif options.target_language == TargetLanguage.PYTHON:
        target_options = PythonOptions()
    options = replace(
        options,
        filter_resource_names=_pick(filter_resource_names, config.filter_resource_names, False),  # noqa: FBT003
        resource_name_property=_pick(resource_name_property, config.resource_name_property, ""),
        annotate_nodes_with_locations=_pick(annotate_locations, config.annotate_locations, False),  # noqa: FBT003
        target_sdk_version=_pick(sdk_version, config.sdk_version, ""),
        target_options=target_options,
    )

    effective_output = _pick(output, config.output, None)
    err_console.print(f"[cyan]Converting:[/cyan] {escape(options.path)} [dim]({options.target_language})[/dim]")
    try:
        if effective_output is None:
            convert(replace(options, writer=sys.stdout))
        else:
            buffer = io.StringIO()
            convert(replace(options, writer=buffer))
            effective_output.write_text(buffer.getvalue(), encoding="utf-8")
    except ConvertError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    except OSError as e:
        err_console.print(f"[red]Error: cannot write {effective_output}: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if effective_output is not None:
        err_console.print(f"[green]✓ Wrote {effective_output}[/green]")


@app.command()
def graph(
    path: Annotated[
        Path | None,
        typer.Argument(help="Directory of the root Terraform module (default: current directory)"),
    ] = None,
    *,
    provider_info: Annotated[
        Path | None,
        typer.Option("--provider-info", help="TOML or JSON file with provider schema information"),
    ] = None,
    allow_missing_providers: Annotated[
        bool | None,
        typer.Option("--allow-missing-providers/--strict-providers", help="Use placeholders for unknown providers"),
    ] = None,
    allow_missing_variables: Annotated[
        bool | None,
        typer.Option("--allow-missing-variables/--strict-variables", help="Use placeholders for undeclared variables"),
    ] = None,
    allow_missing_comments: Annotated[
        bool | None,
        typer.Option("--allow-missing-comments/--strict-comments", help="Continue when comments cannot be recovered"),
    ] = None,
) -> None:
    """Show the graphs built for a Terraform module tree."""
    config = _load_config()
    options = _options(
        config,
        path=path,
        language=None,
        provider_info=provider_info,
        allow_missing_providers=allow_missing_providers,
        allow_missing_variables=allow_missing_variables,
        allow_missing_comments=allow_missing_comments,
    )

    try:
        tree = ModuleTree.new("", options.path)
        tree.load(ModuleStorage.default())
        forest = build_forest(tree, True, options)  # noqa: FBT003
    except Tf2CodeError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Module", style="bold")
    table.add_column("Providers", justify="right")
    table.add_column("Resources", justify="right", style="yellow")
    table.add_column("Data sources", justify="right")
    table.add_column("Variables", justify="right")
    table.add_column("Locals", justify="right")
    table.add_column("Outputs", justify="right", style="green")
    table.add_column("Modules", justify="right")

    for g in forest:
        data_sources = sum(1 for r in g.resources.values() if r.is_data_source)
        table.add_row(
            ".".join(("root", *g.path)),
            str(len(g.providers)),
            str(len(g.resources) - data_sources),
            str(data_sources),
            str(len(g.variables)),
            str(len(g.locals)),
            str(len(g.outputs)),
            str(len(g.modules)),
        )

    out_console.print(
        Panel(
            table,
            title=f"[bold]{escape(options.path)}[/bold]",
            subtitle=f"[dim]{len(forest)} module(s)[/dim]",
            border_style="cyan",
        ),
    )


def main() -> None:
    app()
