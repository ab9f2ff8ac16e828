"""User store management CLI commands."""

from collections.abc import Iterator
from contextlib import contextmanager

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from src.app.core.services import (
    Conflict,
    DbManageService,
    DbSessionService,
    Failure,
    NotFound,
    UserService,
)
from src.app.entities.core.user import SqlUserRepository, UserCreate
from src.app.runtime.context import get_config
from src.app.runtime.init_db import seed_demo_users

console = Console()

# Create the users subcommand app
users_app = typer.Typer(help="Manage users in the configured database")


@contextmanager
def open_user_service() -> Iterator[UserService]:
    """Yield a service over the configured database, disposing the engine after."""
    database_service = DbSessionService(get_config())
    try:
        DbManageService(database_service).create_all()
        yield UserService(SqlUserRepository(database_service))
    finally:
        database_service.dispose()


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]❌ {escape(message)}[/red]")
    return typer.Exit(code=1)


@users_app.command("list")
def list_users() -> None:
    """List all users in creation order."""
    with open_user_service() as service:
        result = service.list_all()

    if isinstance(result, Failure):
        raise _fail(f"Failed to list users: {result.cause}")

    users = result.value
    if not users:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(title="Users")
    table.add_column("ID", style="cyan")
    table.add_column("First", style="magenta")
    table.add_column("Last", style="magenta")
    table.add_column("Email", style="blue")
    table.add_column("Phone", style="green")
    table.add_column("Created", style="dim")

    for user in users:
        table.add_row(
            str(user.id),
            user.first_name,
            user.last_name,
            user.email,
            user.phone_number or "",
            user.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
    console.print(f"\n[green]Found {len(users)} users[/green]")


@users_app.command("add")
def add_user(
    first_name: str = typer.Argument(..., help="First name"),
    last_name: str = typer.Argument(..., help="Last name"),
    email: str = typer.Option(..., "--email", "-e", help="Email address"),
    phone_number: str | None = typer.Option(
        None, "--phone", "-p", help="Phone number"
    ),
) -> None:
    """Add a new user."""
    try:
        data = UserCreate(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone_number=phone_number,
        )
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise _fail(f"Invalid user: {errors}") from e

    with open_user_service() as service:
        result = service.create(data)

    if isinstance(result, Conflict):
        raise _fail(result.message)
    if isinstance(result, Failure):
        raise _fail(f"Failed to create user: {result.cause}")

    console.print(f"[green]✅ Created user {result.value.id} ({data.email})[/green]")


@users_app.command("delete")
def delete_user(
    user_id: int = typer.Argument(..., help="ID of the user to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """Delete a user by ID."""
    with open_user_service() as service:
        found = service.get_by_id(user_id)
        if isinstance(found, NotFound):
            raise _fail(found.message)
        if isinstance(found, Failure):
            raise _fail(f"Failed to load user: {found.cause}")

        # Confirm deletion unless --force is used
        if not force:
            user = found.value
            if not Confirm.ask(
                f"Are you sure you want to delete user {user_id} "
                f"({user.first_name} {user.last_name})?"
            ):
                console.print("[yellow]Deletion cancelled[/yellow]")
                return

        result = service.delete(user_id)

    if isinstance(result, Failure):
        raise _fail(f"Failed to delete user: {result.cause}")
    if not result.value:
        raise _fail(NotFound(user_id).message)

    console.print(f"[green]✅ Deleted user {user_id}[/green]")


@users_app.command("seed")
def seed_users() -> None:
    """Insert the demo users when the store is empty."""
    with open_user_service() as service:
        added = seed_demo_users(service)

    if added:
        console.print(f"[green]✅ Seeded {added} demo users[/green]")
    else:
        console.print("[yellow]Store already has users; nothing seeded[/yellow]")
