"""Server commands -- capabilities and running jobs.

Typical workflow::

    atelier -c dev server info     # learns and stores the API version
    atelier -c dev server jobs --system
"""

from __future__ import annotations

import typer

from atelier_client.client.api import AtelierAPI
from atelier_client.output import OutputFormat, format_response, get_output, info, print_table
from atelier_client.runtime import run_with_api


server_app = typer.Typer(no_args_is_help=True)


@server_app.command("info")
def server_info(ctx: typer.Context) -> None:
    """Show server version, API level and namespaces.

    Also records the negotiated API version so later commands can use
    newer endpoints.

    Example::

        atelier -c dev server info
        atelier -c dev --json server info
    """

    async def _run(api: AtelierAPI) -> tuple[dict, str]:
        envelope = await api.server_info()
        return envelope.result.content or {}, api.status.tooltip

    content, tooltip = run_with_api(ctx, _run)
    if tooltip:
        info(tooltip)

    if get_output().format == OutputFormat.JSON:
        format_response(content)
        return
    print_table(
        ["Field", "Value"],
        [
            ["version", str(content.get("version", ""))],
            ["api", str(content.get("api", ""))],
            ["namespaces", ", ".join(content.get("namespaces", []))],
        ],
        title="Server",
    )


@server_app.command("jobs")
def server_jobs(
    ctx: typer.Context,
    system: bool = typer.Option(False, "--system", help="Include system jobs."),
) -> None:
    """List processes running on the server."""

    async def _run(api: AtelierAPI) -> list:
        envelope = await api.get_jobs(system)
        return envelope.result.content or []

    format_response(run_with_api(ctx, _run))
