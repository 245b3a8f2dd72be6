"""Built-in CLI sub-commands for atelier_client.

This package groups the Typer sub-command modules of the ``atelier`` CLI:

* :mod:`~atelier_client.commands.server` -- server capabilities and jobs.
* :mod:`~atelier_client.commands.doc` -- list, read, write and delete
  documents.
* :mod:`~atelier_client.commands.action` -- compile, index, search and SQL
  query actions.
* :mod:`~atelier_client.commands.session` -- inspect or drop the cookie
  session of a connection.
* :mod:`~atelier_client.commands.config` -- manage registered servers and
  connection blocks.

Each module exports a :class:`typer.Typer` sub-application registered on the
root app in :mod:`atelier_client.app`. Commands that talk to the server go
through :func:`~atelier_client.runtime.run_with_api`.
"""
