"""Main CLI application module."""

import typer

from .server_commands import init_db_command, serve
from .user_commands import users_app

# Create the main CLI application
app = typer.Typer(
    help="User API CLI - run the service and manage the user store",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register commands
app.command(name="serve")(serve)
app.command(name="init-db")(init_db_command)
app.add_typer(users_app, name="users")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
