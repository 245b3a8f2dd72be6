"""Document commands -- list, read, write and delete server documents.

Documents are addressed by their full name (``MyApp.Utils.cls``,
``MyApp.Main.mac``) or, for CSP files, by their web path
(``/csp/user/page.csp``).
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from atelier_client.client.api import AtelierAPI
from atelier_client.client.envelope import decode_fragments
from atelier_client.exit_codes import EXIT_INVALID_USAGE
from atelier_client.output import error, format_response, print_data, success
from atelier_client.runtime import run_with_api


doc_app = typer.Typer(no_args_is_help=True)


@doc_app.command("list")
def doc_list(
    ctx: typer.Context,
    category: str = typer.Option("*", "--category", help="CLS, RTN, CSP, OTH or *."),
    type: str = typer.Option("*", "--type", help="Document type filter, e.g. mac."),
    filter: str = typer.Option("", "--filter", help="SQL LIKE filter on the name."),
    generated: bool = typer.Option(False, "--generated", help="Include generated documents."),
) -> None:
    """List document names in the current namespace.

    Example::

        atelier -c dev doc list --category CLS --filter "MyApp.%"
    """

    async def _run(api: AtelierAPI) -> list:
        envelope = await api.get_doc_names(generated, category, type, filter)
        return envelope.result.content or []

    format_response(run_with_api(ctx, _run))


@doc_app.command("get")
def doc_get(
    ctx: typer.Context,
    name: str = typer.Argument(help="Document name."),
    format: Optional[str] = typer.Option(None, "--format", help="udl or xml."),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the document to a file instead of stdout."
    ),
) -> None:
    """Print a document's source.

    Binary documents are decoded and written as raw bytes.
    """

    async def _run(api: AtelierAPI):
        envelope = await api.get_doc(name, format)
        return envelope.result.content

    content = run_with_api(ctx, _run)
    body = content.get("content") if isinstance(content, dict) else content
    if isinstance(content, dict) and content.get("enc") and isinstance(body, list):
        body = decode_fragments(body)

    if isinstance(body, (bytes, bytearray)):
        if output_file is not None:
            output_file.write_bytes(bytes(body))
        else:
            sys.stdout.buffer.write(bytes(body))
            sys.stdout.flush()
        return

    lines = [str(line) for line in (body or [])]
    if output_file is not None:
        output_file.write_text("\n".join(lines), encoding="utf-8")
        success(f"Saved {name} to {output_file}")
        return
    for line in lines:
        print_data(line)


@doc_app.command("put")
def doc_put(
    ctx: typer.Context,
    name: str = typer.Argument(help="Document name."),
    source: Path = typer.Argument(help="Local file with the document source."),
    ignore_conflict: bool = typer.Option(
        False, "--ignore-conflict", help="Overwrite even if the server copy changed."
    ),
) -> None:
    """Upload a document's source.

    Example::

        atelier -c dev doc put MyApp.Utils.cls src/MyApp/Utils.cls
    """
    if not source.is_file():
        error(f"File not found: {source}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    data = {
        "enc": False,
        "content": source.read_text(encoding="utf-8").splitlines(),
    }

    async def _run(api: AtelierAPI) -> None:
        await api.put_doc(name, data, ignore_conflict or None)

    run_with_api(ctx, _run)
    success(f"Saved {name}")


@doc_app.command("delete")
def doc_delete(
    ctx: typer.Context,
    name: str = typer.Argument(help="Document name."),
) -> None:
    """Delete a document from the server."""

    async def _run(api: AtelierAPI) -> None:
        await api.delete_doc(name)

    run_with_api(ctx, _run)
    success(f"Deleted {name}")
