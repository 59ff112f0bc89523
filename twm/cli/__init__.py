"""twm CLI application - main entry point."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.traceback import install

from twm import __version__
from twm.config import config_schema, load_config, local_layout_schema, write_default_config
from twm.console import get_stderr_console
from twm.exceptions import TwmError
from twm.handler import Handler, OpenOptions

# Install rich traceback handler for better error messages
install(show_locals=False, width=None, word_wrap=True)

app = typer.Typer(
    name="twm",
    help=(
        "twm (tmux workspace manager) opens workspaces in tmux sessions.\n\n"
        "A workspace is any directory matching a workspace definition from your configuration. "
        "Without configuration, any directory containing a `.git` entry or a `.twm.yaml` file is a workspace."
    ),
    rich_markup_mode="markdown",
)

console = get_stderr_console()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"twm version {__version__}")
        raise typer.Exit()


@app.command()
def main(
    existing: bool = typer.Option(
        False, "--existing", "-e", help="Pick an existing tmux session to attach to."
    ),
    group: bool = typer.Option(
        False,
        "--group",
        "-g",
        help="Pick an existing session and open a new session in its group. Ignores --layout and --path.",
    ),
    dont_attach: bool = typer.Option(
        False, "--dont-attach", "-d", help="Don't attach to the workspace session after opening it."
    ),
    layout: bool = typer.Option(
        False,
        "--layout",
        "-l",
        help="Pick a globally defined layout for the new session, overriding any other layout.",
    ),
    path: Optional[str] = typer.Option(
        None,
        "--path",
        "-p",
        help="Open this path as a workspace. It does not have to match a workspace definition.",
    ),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Force the session name instead of deriving it from the path."
    ),
    make_default_config: bool = typer.Option(
        False,
        "--make-default-config",
        help="Write a default twm.yaml and its schema to the config directory (or --path). Never overwrites.",
    ),
    print_config_schema: bool = typer.Option(
        False, "--print-config-schema", help="Print the JSON schema of twm.yaml."
    ),
    print_layout_config_schema: bool = typer.Option(
        False, "--print-layout-config-schema", help="Print the JSON schema of local .twm.yaml layout files."
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
):
    """Open a workspace, picking it interactively unless --path is given."""
    try:
        if make_default_config:
            for written in write_default_config(Path(path).expanduser() if path else None):
                console.print(f"[green]✓[/green] Wrote {escape(str(written))}")
            return
        if print_config_schema:
            typer.echo(config_schema())
            return
        if print_layout_config_schema:
            typer.echo(local_layout_schema())
            return

        handler = Handler(load_config())
        options = OpenOptions(path=path, name=name, choose_layout=layout, dont_attach=dont_attach)

        if existing:
            handler.handle_existing_session_selection()
        elif group:
            handler.handle_group_session_selection(OpenOptions(dont_attach=dont_attach))
        else:
            handler.handle_workspace_selection(options)
    except TwmError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
