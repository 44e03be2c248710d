"""
Command-line interface for Genealogy Records.

Runs the API server and talks to a running server through the API client.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from genealogy_records import __version__
from genealogy_records.client import ApiError, GenealogyApiClient, PersonForm
from genealogy_records.core.errors import ConfigurationError, ValidationError

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    if logging.getLogger().getEffectiveLevel() > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def async_command(f):
    """Decorator to run async commands. API and form errors are printed instead of raised."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(f(*args, **kwargs))
        except ApiError as e:
            _fail(f"{e.message} ({e.status_code})", e.errors)
        except ValidationError as e:
            _fail(e.message, e.errors)
    return wrapper


def _client(ctx: click.Context) -> GenealogyApiClient:
    return GenealogyApiClient(
        base_url=ctx.obj["api_url"],
        token=ctx.obj["token"],
        transport=ctx.obj.get("transport"),
    )


def _fail(message: str, errors: list[str] | None = None) -> None:
    console.print(f"[red]Error: {message}[/red]")
    for error in errors or []:
        console.print(f"  [red]- {error}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="genealogy-records")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--api-url", envvar="GENEALOGY_API_URL", default="http://localhost:3001",
              show_default=True, help="API server base URL")
@click.option("--token", envvar="GENEALOGY_TOKEN", help="Access token for API calls")
@click.pass_context
def cli(ctx, verbose, api_url, token):
    """
    Genealogy record keeping.

    Family trees with persons, relationships and life events.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["api_url"] = api_url
    ctx.obj["token"] = token
    configure_logging(logging.DEBUG if verbose else logging.INFO)


# =============================================================================
# Server
# =============================================================================

@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", "-p", type=int, help="Port (defaults to PORT or 3001)")
@click.option("--memory", is_flag=True, help="Use in-memory storage and accounts (development only)")
def serve(host: str, port: Optional[int], memory: bool):
    """Run the API server."""
    import uvicorn

    from genealogy_records.config import Settings
    from genealogy_records.web import create_app

    if memory:
        from genealogy_records.auth import MemoryAuthProvider
        from genealogy_records.store import MemoryStore

        settings = Settings.for_development()
        app = create_app(settings, store=MemoryStore(), auth_provider=MemoryAuthProvider())
        console.print("[yellow]Using in-memory storage; data is lost on exit[/yellow]")
    else:
        try:
            settings = Settings.from_env()
        except ConfigurationError as e:
            _fail(str(e))
        app = create_app(settings)

    logging.getLogger().setLevel(settings.log_level)
    uvicorn.run(app, host=host, port=port or settings.port, log_level=settings.log_level.lower())


# =============================================================================
# Account
# =============================================================================

@cli.command()
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.pass_context
@async_command
async def login(ctx, email: str, password: str):
    """Sign in and print an access token."""
    async with _client(ctx) as client:
        result = await client.login(email, password)

    console.print(f"[green]Signed in as {result.user.username}[/green]")
    click.echo(f"\nexport GENEALOGY_TOKEN={result.access_token}")
    console.print(f"[dim]Expires in {result.expires_in // 3600}h. Refresh token:[/dim]")
    click.echo(result.refresh_token)


# =============================================================================
# Genealogies
# =============================================================================

@cli.group()
def genealogies():
    """Manage genealogies (family trees)."""
    pass


@genealogies.command("list")
@click.pass_context
@async_command
async def genealogies_list(ctx):
    """List your genealogies and every public one."""
    async with _client(ctx) as client:
        items = await client.list_genealogies()

    if not items:
        console.print("[yellow]No genealogies found[/yellow]")
        return

    table = Table(title="Genealogies")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Privacy")
    table.add_column("Persons", justify="right")
    for g in items:
        table.add_row(g.id, g.name, g.privacy_level.value, str(g.person_count or 0))
    console.print(table)


@genealogies.command("create")
@click.argument("name")
@click.option("--description", "-d", help="Description")
@click.option("--privacy", type=click.Choice(["public", "private", "family"]),
              default="private", show_default=True, help="Who may read it")
@click.pass_context
@async_command
async def genealogies_create(ctx, name: str, description: Optional[str], privacy: str):
    """Create a genealogy owned by you."""
    async with _client(ctx) as client:
        genealogy = await client.create_genealogy(name, description, privacy)
    console.print(f"[green]Created genealogy {genealogy.name}[/green] ({genealogy.id})")


@genealogies.command("show")
@click.argument("genealogy_id")
@click.pass_context
@async_command
async def genealogies_show(ctx, genealogy_id: str):
    """Show a genealogy and its persons."""
    async with _client(ctx) as client:
        genealogy = await client.get_genealogy(genealogy_id)
        persons = await client.list_persons(genealogy_id)

    lines = [
        f"Privacy: {genealogy.privacy_level.value}",
        f"Owner: {genealogy.owner_id}",
        f"Persons: {len(persons)}",
    ]
    if genealogy.description:
        lines.insert(0, genealogy.description)
    console.print(Panel("\n".join(lines), title=genealogy.name, subtitle=genealogy.id))
    if persons:
        _print_persons(persons)


@genealogies.command("delete")
@click.argument("genealogy_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
@async_command
async def genealogies_delete(ctx, genealogy_id: str, yes: bool):
    """Delete a genealogy with all its persons, relationships and events."""
    if not yes and not click.confirm(f"Delete genealogy {genealogy_id} and everything in it?"):
        return
    async with _client(ctx) as client:
        removed = await client.delete_genealogy(genealogy_id)
    console.print(f"[green]Deleted[/green] {_removed_summary(removed)}")


# =============================================================================
# Persons
# =============================================================================

@cli.group()
def persons():
    """Manage persons in a genealogy."""
    pass


@persons.command("list")
@click.argument("genealogy_id")
@click.pass_context
@async_command
async def persons_list(ctx, genealogy_id: str):
    """List the persons in a genealogy."""
    async with _client(ctx) as client:
        items = await client.list_persons(genealogy_id)
    if not items:
        console.print("[yellow]No persons found[/yellow]")
        return
    _print_persons(items)


@persons.command("add")
@click.argument("genealogy_id")
@click.argument("name")
@click.option("--gender", "-g", type=click.Choice(["male", "female", "unknown"]), default="unknown")
@click.option("--birth", "-b", "birth_date", help="Birth date (YYYY-MM-DD)")
@click.option("--death", "-d", "death_date", help="Death date (YYYY-MM-DD)")
@click.option("--birth-place", help="Birth place")
@click.option("--death-place", help="Death place")
@click.option("--occupation", help="Occupation")
@click.pass_context
@async_command
async def persons_add(ctx, genealogy_id: str, name: str, gender: str,
                      birth_date: Optional[str], death_date: Optional[str],
                      birth_place: Optional[str], death_place: Optional[str],
                      occupation: Optional[str]):
    """Add a person to a genealogy."""
    form = PersonForm(
        name=name,
        genealogy_id=genealogy_id,
        gender=gender,
        birth_date=birth_date,
        death_date=death_date,
        birth_place=birth_place,
        death_place=death_place,
        occupation=occupation,
    )
    async with _client(ctx) as client:
        person = await client.create_person(form)
    console.print(f"[green]Added {person.name}[/green] ({person.id})")


@persons.command("show")
@click.argument("person_id")
@click.pass_context
@async_command
async def persons_show(ctx, person_id: str):
    """Show a person with relationships and life events."""
    async with _client(ctx) as client:
        person = await client.get_person(person_id)
        relationships = await client.list_relationships(person_id)
        events = await client.list_events(person_id)

    lines = [
        f"Gender: {person.gender.value}",
        f"Born: {person.birth_date or '?'}" + (f", {person.birth_place}" if person.birth_place else ""),
    ]
    if person.death_date or person.death_place:
        lines.append(
            f"Died: {person.death_date or '?'}" + (f", {person.death_place}" if person.death_place else "")
        )
    if person.occupation:
        lines.append(f"Occupation: {person.occupation}")
    if person.genealogy:
        lines.append(f"Genealogy: {person.genealogy.name}")
    console.print(Panel("\n".join(lines), title=person.name, subtitle=person.id))

    if relationships:
        table = Table(title="Relationships")
        table.add_column("ID", style="dim")
        table.add_column("Type")
        table.add_column("Person 1", style="cyan")
        table.add_column("Person 2", style="cyan")
        for r in relationships:
            table.add_row(
                r.id,
                r.relationship_type.value,
                r.person1.name if r.person1 else r.person1_id,
                r.person2.name if r.person2 else r.person2_id,
            )
        console.print(table)

    if events:
        console.print("\n[bold]Life events:[/bold]")
        for e in events:
            place = f" at {e.event_place}" if e.event_place else ""
            console.print(f"  {e.event_date or '?'} {e.event_type.value}{place}")


@persons.command("delete")
@click.argument("person_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
@async_command
async def persons_delete(ctx, person_id: str, yes: bool):
    """Delete a person with their relationships and events."""
    if not yes and not click.confirm(f"Delete person {person_id}?"):
        return
    async with _client(ctx) as client:
        removed = await client.delete_person(person_id)
    console.print(f"[green]Deleted[/green] {_removed_summary(removed)}")


# =============================================================================
# Relationships
# =============================================================================

@cli.command()
@click.argument("person1_id")
@click.argument("person2_id")
@click.argument("relationship_type", type=click.Choice(["parent", "child", "spouse", "sibling"]))
@click.pass_context
@async_command
async def relate(ctx, person1_id: str, person2_id: str, relationship_type: str):
    """
    Link two persons.

    "parent" makes PERSON1 the parent of PERSON2; "child" makes PERSON1 the
    child of PERSON2.
    """
    async with _client(ctx) as client:
        relationship = await client.create_relationship(person1_id, person2_id, relationship_type)

    p1 = relationship.person1.name if relationship.person1 else relationship.person1_id
    p2 = relationship.person2.name if relationship.person2 else relationship.person2_id
    console.print(
        f"[green]Linked:[/green] {p1} is {relationship.relationship_type.value} of {p2}"
    )


# =============================================================================
# Helpers
# =============================================================================

def _print_persons(items) -> None:
    table = Table(title="Persons")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Gender")
    table.add_column("Born")
    table.add_column("Died")
    for p in items:
        table.add_row(
            p.id, p.name, p.gender.value,
            str(p.birth_date or ""), str(p.death_date or ""),
        )
    console.print(table)


def _removed_summary(removed: dict[str, int]) -> str:
    return ", ".join(f"{count} {table}" for table, count in removed.items() if count) or "nothing"


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
