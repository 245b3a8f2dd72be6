"""Action commands -- compile, index, search and run SQL queries."""

from __future__ import annotations

from typing import Optional

import typer

from atelier_client.client.api import SEARCH_DEFAULT_FILES, AtelierAPI
from atelier_client.output import format_response
from atelier_client.runtime import run_with_api


action_app = typer.Typer(no_args_is_help=True)


@action_app.command("compile")
def action_compile(
    ctx: typer.Context,
    docs: list[str] = typer.Argument(help="Documents to compile."),
    flags: Optional[str] = typer.Option(None, "--flags", help="Compiler flags, e.g. cuk."),
    source: bool = typer.Option(False, "--source", help="Return the compiled source."),
) -> None:
    """Compile documents on the server.

    Compiler messages arrive in the response console and are printed to
    stderr unless ``--quiet`` is given.

    Example::

        atelier -c dev action compile MyApp.Utils.cls MyApp.Main.mac --flags cuk
    """

    async def _run(api: AtelierAPI):
        envelope = await api.action_compile(docs, flags, source)
        return envelope.result.content

    content = run_with_api(ctx, _run)
    if content:
        format_response(content)


@action_app.command("index")
def action_index(
    ctx: typer.Context,
    docs: list[str] = typer.Argument(help="Documents to index."),
) -> None:
    """Show the index of class members and routine labels."""

    async def _run(api: AtelierAPI):
        envelope = await api.action_index(docs)
        return envelope.result.content

    format_response(run_with_api(ctx, _run))


@action_app.command("search")
def action_search(
    ctx: typer.Context,
    query: str = typer.Argument(help="Text to search for."),
    files: str = typer.Option(SEARCH_DEFAULT_FILES, "--files", help="Document name masks."),
    regex: bool = typer.Option(False, "--regex", help="Treat the query as a regex."),
    case: bool = typer.Option(False, "--case", help="Case-sensitive match."),
    word: bool = typer.Option(False, "--word", help="Whole words only."),
    wild: bool = typer.Option(False, "--wild", help="Allow * and ? wildcards."),
    system: bool = typer.Option(False, "--system", help="Include system documents."),
    generated: bool = typer.Option(False, "--generated", help="Include generated documents."),
    max: Optional[int] = typer.Option(None, "--max", help="Maximum number of results."),
) -> None:
    """Search document sources (API v2 and later).

    Example::

        atelier -c dev action search "Set x" --files "*.mac" --max 50
    """

    async def _run(api: AtelierAPI):
        envelope = await api.action_search(
            query,
            files=files,
            sys=system,
            gen=generated,
            max=max,
            regex=regex,
            case=case,
            wild=wild,
            word=word,
        )
        return envelope.result.content

    format_response(run_with_api(ctx, _run) or [])


@action_app.command("query")
def action_query(
    ctx: typer.Context,
    sql: str = typer.Argument(help="SQL statement; use ? for parameters."),
    parameters: Optional[list[str]] = typer.Argument(None, help="Statement parameters."),
) -> None:
    """Run an SQL query in the current namespace.

    Example::

        atelier -c dev action query "SELECT Name FROM %Dictionary.ClassDefinition WHERE Name %STARTSWITH ?" MyApp
    """

    async def _run(api: AtelierAPI):
        envelope = await api.action_query(sql, list(parameters or []))
        return envelope.result.content

    format_response(run_with_api(ctx, _run) or [])
