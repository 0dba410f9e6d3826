"""CLI entrypoint: Typer app definition and command registration"""

import typer

from quizdraft.cli.commands import (
    import_cmd, init_cmd, list_cmd, new_cmd, publish_cmd, show_cmd, unpublish_cmd,
)


app = typer.Typer(name="quizdraft", no_args_is_help=True, help="Quiz document drafts, autosave, and publishing")

app.command(name="init")(init_cmd)
app.command(name="new")(new_cmd)
app.command(name="import")(import_cmd)
app.command(name="list")(list_cmd)
app.command(name="show")(show_cmd)
app.command(name="publish")(publish_cmd)
app.command(name="unpublish")(unpublish_cmd)
