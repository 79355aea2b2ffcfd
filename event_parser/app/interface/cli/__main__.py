import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from InquirerPy import inquirer

from event_parser.app.application.session import QuerySession
from event_parser.app.config import settings
from event_parser.app.domain.errors import SchemaError
from event_parser.app.domain.models import QueryState
from event_parser.app.infrastructure.factories.chain_client_factory import chain_client_factory
from event_parser.app.infrastructure.presets import load_preset_text, preset_names
from event_parser.app.interface.presentation.render import (
    events_to_json,
    render_catalog,
    render_error,
    render_page,
    render_status,
)


load_dotenv()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = typer.Typer()
events_app = typer.Typer(help="cli for parsing historical contract events.")
app.add_typer(events_app, name="events")

_CUSTOM_JSON = "Custom (JSON ABI file)"
_CUSTOM_SIGNATURE = "Custom (event declarations)"

_NEXT = "Next page"
_PREVIOUS = "Previous page"
_NEW_QUERY = "New query"
_QUIT = "Quit"


# ---------------------------------------------------------------------
# Schema sources
# ---------------------------------------------------------------------

def _read_schema(abi: Optional[Path], preset: Optional[str], signature: Optional[str]) -> str:
    given = [x for x in (abi, preset, signature) if x]
    if len(given) != 1:
        raise typer.BadParameter("Provide exactly one of --abi, --preset or --signature")
    if abi is not None:
        if not abi.exists():
            raise typer.BadParameter(f"ABI file not found: {abi}")
        return abi.read_text(encoding="utf-8")
    if preset is not None:
        try:
            return load_preset_text(preset)
        except SchemaError as e:
            raise typer.BadParameter(e.detail)
    return signature or ""


def _parse_filter_options(values: List[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Filter must look like name=value[,value...]: {item!r}")
        out[name.strip()] = value
    return out


# ---------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------

@events_app.command("list")
def list_events(
    abi: Optional[Path] = typer.Option(None, help="Path to a JSON ABI or compiler artifact."),
    preset: Optional[str] = typer.Option(None, help=f"Interface preset: {', '.join(preset_names())}."),
    signature: Optional[str] = typer.Option(None, help="Solidity event declarations, ';' separated."),
) -> None:
    """List the events of a schema with their parameters."""
    session = QuerySession(page_size=settings.page_size)
    if not session.load_schema(_read_schema(abi, preset, signature)) or session.catalog is None:
        typer.echo(render_status(session.status), err=True)
        raise typer.Exit(code=1)
    typer.echo(render_catalog(session.catalog))


@events_app.command("query")
def query(
    address: str = typer.Option(..., help="Contract address (0x...)."),
    event: Optional[str] = typer.Option(None, help="Event name, defaults to the first event."),
    abi: Optional[Path] = typer.Option(None, help="Path to a JSON ABI or compiler artifact."),
    preset: Optional[str] = typer.Option(None, help=f"Interface preset: {', '.join(preset_names())}."),
    signature: Optional[str] = typer.Option(None, help="Solidity event declarations, ';' separated."),
    from_block: str = typer.Option("", "--from-block", help="Block tag: N, +N, -N, latest, latest-N, earliest..."),
    to_block: str = typer.Option("", "--to-block", help="Block tag, empty means latest."),
    rpc: Optional[str] = typer.Option(None, help="RPC endpoint, defaults to RPC_ENDPOINT."),
    filters: List[str] = typer.Option([], "--filter", help="Indexed parameter filter, name=v1,v2."),
    page_number: int = typer.Option(1, "--page", min=1, help="Page to display."),
    as_json: bool = typer.Option(False, "--json", help="Print every decoded event as JSON."),
) -> None:
    """Fetch and decode events for a block range."""
    session = QuerySession(page_size=settings.page_size)
    if not session.load_schema(_read_schema(abi, preset, signature)):
        typer.echo(render_status(session.status), err=True)
        raise typer.Exit(code=1)
    if event and not session.select_event(event):
        typer.echo(render_status(session.status), err=True)
        raise typer.Exit(code=1)

    for name, value in _parse_filter_options(filters).items():
        session.set_filter(name, value)

    session.form.contract_address = address
    session.form.from_block = from_block
    session.form.to_block = to_block
    session.form.rpc_endpoint = rpc or settings.rpc_endpoint or ""

    status = asyncio.run(session.run_query(chain_client_factory))
    if status.state is QueryState.FAILED:
        typer.echo(render_error(status.error_kind, status.detail), err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(events_to_json(session.results))
        return
    typer.echo(render_page(session.go_to_page(page_number), session.results_event_name))


@events_app.command("run")
def run() -> None:
    """Interactive event parser."""
    session = QuerySession(page_size=settings.page_size)
    session.form.rpc_endpoint = settings.rpc_endpoint or ""

    while True:
        _prompt_schema(session)
        _prompt_event(session)
        _prompt_filters(session)
        _prompt_query_inputs(session)

        typer.echo("Loading...")
        asyncio.run(session.run_query(chain_client_factory))

        if not _browse_results(session):
            return


# ---------------------------------------------------------------------
# Interactive steps
# ---------------------------------------------------------------------

def _prompt_schema(session: QuerySession) -> None:
    while True:
        source = inquirer.select(
            message="Interface definition:",
            choices=[_CUSTOM_JSON, _CUSTOM_SIGNATURE, *preset_names()],
            pointer="❯",
            instruction="Use ↑/↓ to move, Enter to select",
        ).execute()

        if source == _CUSTOM_JSON:
            path = inquirer.filepath(message="ABI file:", only_files=True).execute()
            try:
                text = Path(path).expanduser().read_text(encoding="utf-8")
            except OSError as e:
                typer.echo(render_error(None, f"Cannot read {path}: {e.strerror}"), err=True)
                continue
        elif source == _CUSTOM_SIGNATURE:
            text = inquirer.text(
                message="Event declarations (';' separated):",
                default="event Transfer(address indexed from, address indexed to, uint256 value)",
            ).execute()
        else:
            if session.use_preset(source):
                return
            typer.echo(render_status(session.status), err=True)
            continue

        if session.load_schema(text):
            return
        typer.echo(render_status(session.status), err=True)


def _prompt_event(session: QuerySession) -> None:
    names = session.catalog.names() if session.catalog is not None else []
    if len(names) > 1:
        name = inquirer.select(
            message="Select event to parse:",
            choices=names,
            default=session.selected_event.name if session.selected_event else None,
            pointer="❯",
        ).execute()
        session.select_event(name)


def _prompt_filters(session: QuerySession) -> None:
    if session.selected_event is None:
        return
    for param in session.selected_event.indexed_parameters:
        value = inquirer.text(
            message=f"{param.name} ({param.type}) filter, comma separated (optional):",
            default=session.filter_inputs.get(param.name, ""),
        ).execute()
        session.set_filter(param.name, value)


def _prompt_query_inputs(session: QuerySession) -> None:
    form = session.form
    form.contract_address = inquirer.text(
        message="Contract address:",
        default=form.contract_address,
    ).execute()
    form.from_block = inquirer.text(
        message="Start block (N | +N | -N | latest | latest-N):",
        default=form.from_block,
    ).execute()
    form.to_block = inquirer.text(
        message="End block (empty = latest):",
        default=form.to_block,
    ).execute()
    form.rpc_endpoint = inquirer.text(
        message="RPC endpoint:",
        default=form.rpc_endpoint,
    ).execute()


def _browse_results(session: QuerySession) -> bool:
    """Page through the results; return False when the user quits."""
    if session.status.state is QueryState.FAILED:
        typer.echo(render_status(session.status), err=True)
    elif not session.results:
        typer.echo("No events found.")

    view = session.current_view()
    while True:
        if session.results:
            typer.echo(render_page(view, session.results_event_name))

        choices = []
        if view.has_next:
            choices.append(_NEXT)
        if view.has_previous:
            choices.append(_PREVIOUS)
        choices.extend([_NEW_QUERY, _QUIT])

        action = inquirer.select(message="Next step:", choices=choices, pointer="❯").execute()
        if action == _NEXT:
            view = session.next_page()
        elif action == _PREVIOUS:
            view = session.previous_page()
        elif action == _NEW_QUERY:
            return True
        else:
            return False


if __name__ == "__main__":
    LOGO = r"""
     ___             _     ___
    | __|_ _____ _ _| |_  | _ \__ _ _ _ ___ ___ _ _
    | _|\ V / -_) ' \  _| |  _/ _` | '_(_-</ -_) '_|
    |___|\_/\___|_||_\__| |_| \__,_|_| /__/\___|_|

      --- EVM Event Parser CLI ---
    """
    typer.echo(LOGO)
    app()
