"""
GitDesk admin CLI.

Usage:
    gitdesk init-db
    gitdesk create-user --username alice --email alice@example.com
    gitdesk issue-token 1
    gitdesk serve --port 8000
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.panel import Panel
from sqlalchemy import or_, select

from app.config import get_settings

console = Console()


async def _create_user(username: str, email: str):
    from app.database import async_session, init_db
    from app.models import User

    await init_db()
    async with async_session() as session:
        result = await session.execute(
            select(User).where(or_(User.username == username, User.email == email))
        )
        if result.scalar_one_or_none() is not None:
            return None
        user = User(username=username, email=email)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


async def _get_user(user_id: int):
    from app.database import async_session
    from app.models import User

    async with async_session() as session:
        return await session.get(User, user_id)


@click.group()
@click.version_option(package_name="gitdesk")
def cli():
    """GitDesk - web based git repository manager."""
    pass


@cli.command("init-db")
def init_db_command():
    """Create the database tables."""
    from app.database import init_db

    asyncio.run(init_db())
    console.print(f"[green]Database ready:[/green] {get_settings().database_url}")


@cli.command("create-user")
@click.option("--username", "-u", required=True, help="Login name, also used as commit author")
@click.option("--email", "-e", required=True, help="Unique email address")
def create_user(username: str, email: str):
    """Create a user that can own repositories."""
    user = asyncio.run(_create_user(username, email))
    if user is None:
        console.print(f"[red]Error:[/red] A user named {username} or with email {email} already exists")
        sys.exit(1)
    console.print(f"Created user [green]{user.username}[/green] with id [cyan]{user.id}[/cyan]")


@cli.command("issue-token")
@click.argument("user_id", type=int)
@click.option("--expires", "-x", type=int, default=None, help="Lifetime in minutes")
def issue_token(user_id: int, expires: int | None):
    """Print a bearer token for a user."""
    from app.services.auth import create_access_token

    user = asyncio.run(_get_user(user_id))
    if user is None:
        console.print(f"[red]Error:[/red] User {user_id} not found")
        sys.exit(1)
    if not user.is_active:
        console.print(f"[red]Error:[/red] User {user.username} is inactive")
        sys.exit(1)

    token = create_access_token(user.id, user.username, expires_in_minutes=expires)
    console.print(Panel.fit(
        f"Token for [bold]{user.username}[/bold] (user id {user.id})\n"
        f"Send it as: Authorization: Bearer <token>",
        border_style="green",
    ))
    # Unwrapped so it can be copied or piped
    console.print(token, soft_wrap=True, highlight=False)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", "-p", default=8000, type=int, help="Port")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run("app.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
