"""PromptShelf CLI — shelf command."""

from __future__ import annotations

import json
import sys
from typing import Any

import click

from prompt_shelf.cli.client import ShelfAPIError, ShelfClient
from prompt_shelf.core.templates import analyze_template, complexity_label


def _format_table(rows: list[dict], columns: list[str]) -> str:
    """Simple table formatter."""
    if not rows:
        return "No results."
    widths = {c: len(c) for c in columns}
    for row in rows:
        for c in columns:
            val = str(row.get(c, ""))
            widths[c] = max(widths[c], len(val))

    header = "  ".join(c.upper().ljust(widths[c]) for c in columns)
    separator = "  ".join("-" * widths[c] for c in columns)
    lines = [header, separator]
    for row in rows:
        line = "  ".join(str(row.get(c, "")).ljust(widths[c]) for c in columns)
        lines.append(line)
    return "\n".join(lines)


class ShelfGroup(click.Group):
    """Turns API errors into a one-line message and exit status 1."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except ShelfAPIError as e:
            raise click.ClickException(e.detail if not e.code else f"{e.detail} [{e.code}]") from e


@click.group(cls=ShelfGroup)
@click.option("--api", default="http://localhost:8400", envvar="SHELF_API", help="API base URL")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table")
@click.option("--token", default=None, envvar="SHELF_TOKEN", help="Session token")
@click.pass_context
def cli(ctx: click.Context, api: str, output_format: str, token: str | None) -> None:
    """PromptShelf CLI — libraries, sharing, prompts and template analysis."""
    ctx.obj = ShelfClient(base_url=api, auth_token=token)
    ctx.meta["output_format"] = output_format


def _output(ctx: click.Context, data: Any, columns: list[str] | None = None) -> None:
    fmt = ctx.meta.get("output_format", "table")
    if fmt == "json":
        click.echo(json.dumps(data, indent=2, default=str))
    elif isinstance(data, list) and columns:
        click.echo(_format_table(data, columns))
    else:
        click.echo(json.dumps(data, indent=2, default=str))


def _echo_session(session: dict) -> None:
    click.echo(f"Signed in as {session['user']['email']}")
    click.echo(f"export SHELF_TOKEN={session['token']}")


# --- Auth ---


@cli.command()
@click.option("--email", required=True)
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
def login(ctx: click.Context, email: str, password: str) -> None:
    """Log in and print the session token."""
    client: ShelfClient = ctx.obj
    _echo_session(client.login(email, password))


@cli.command()
@click.option("--email", required=True)
@click.option("--name", default=None)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_context
def signup(ctx: click.Context, email: str, name: str | None, password: str) -> None:
    """Create an account and print the session token."""
    client: ShelfClient = ctx.obj
    _echo_session(client.signup(email, password, name))


# --- Library commands ---


@cli.group()
def library() -> None:
    """Manage libraries."""


@library.command("list")
@click.pass_context
def library_list(ctx: click.Context) -> None:
    """List owned and shared libraries."""
    client: ShelfClient = ctx.obj
    data = client.list_libraries()
    rows = [{**lib, "access": "owner"} for lib in data.get("owned", [])] + [
        {**lib, "access": lib.get("permission")} for lib in data.get("shared", [])
    ]
    _output(ctx, rows, ["id", "name", "access", "is_private", "is_locked"])


@library.command("create")
@click.argument("name")
@click.option("--description", default=None)
@click.option("--color", default=None)
@click.option("--private", "is_private", is_flag=True, default=False)
@click.option("--password", default=None)
@click.option("--hint", "password_hint", default=None)
@click.pass_context
def library_create(
    ctx: click.Context,
    name: str,
    description: str | None,
    color: str | None,
    is_private: bool,
    password: str | None,
    password_hint: str | None,
) -> None:
    """Create a library. Private libraries need --password."""
    client: ShelfClient = ctx.obj
    if is_private and not password:
        password = click.prompt("Library password", hide_input=True, confirmation_prompt=True)
    result = client.create_library(
        {
            "name": name,
            "description": description,
            "color": color,
            "is_private": is_private,
            "password": password,
            "password_hint": password_hint,
        }
    )
    _output(ctx, result)


@library.command("show")
@click.argument("library_id")
@click.pass_context
def library_show(ctx: click.Context, library_id: str) -> None:
    """Show a library and its groups."""
    client: ShelfClient = ctx.obj
    data = client.get_library(library_id)
    data.pop("session", None)
    _output(ctx, data)


@library.command("unlock")
@click.argument("library_id")
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
def library_unlock(ctx: click.Context, library_id: str, password: str) -> None:
    """Unlock a private library; prints the new session token."""
    client: ShelfClient = ctx.obj
    session = client.unlock_library(library_id, password)
    click.echo(f"Unlocked library {library_id}")
    click.echo(f"export SHELF_TOKEN={session['token']}")


# --- Sharing commands ---


@cli.group()
def share() -> None:
    """Share libraries with other users."""


@share.command("list")
@click.argument("library_id")
@click.pass_context
def share_list(ctx: click.Context, library_id: str) -> None:
    """List shares and pending invites."""
    client: ShelfClient = ctx.obj
    data = client.list_shares(library_id)
    if ctx.meta.get("output_format") == "json":
        _output(ctx, data)
        return
    shares = [
        {"user": (s.get("user") or {}).get("email"), "permission": s["permission"], "status": "active"}
        for s in data.get("shares", [])
    ]
    pending = [
        {"user": i["email"], "permission": i["permission"], "status": f"pending until {i['expires_at']}"}
        for i in data.get("pending_invites", [])
    ]
    _output(ctx, shares + pending, ["user", "permission", "status"])


@share.command("invite")
@click.argument("library_id")
@click.argument("email")
@click.option(
    "--permission", type=click.Choice(["read", "write", "admin"]), default="read"
)
@click.pass_context
def share_invite(ctx: click.Context, library_id: str, email: str, permission: str) -> None:
    """Invite EMAIL to a library."""
    client: ShelfClient = ctx.obj
    result = client.invite(library_id, email, permission)
    click.echo(f"Invited {result['email']} ({result['permission']})")
    click.echo(result["invite_url"])


@share.command("update")
@click.argument("library_id")
@click.argument("user_id")
@click.argument("permission", type=click.Choice(["read", "write", "admin"]))
@click.pass_context
def share_update(ctx: click.Context, library_id: str, user_id: str, permission: str) -> None:
    """Change a shared user's permission."""
    client: ShelfClient = ctx.obj
    _output(ctx, client.update_share(library_id, user_id, permission))


@share.command("revoke")
@click.argument("library_id")
@click.argument("user_id")
@click.pass_context
def share_revoke(ctx: click.Context, library_id: str, user_id: str) -> None:
    """Remove a shared user's access."""
    client: ShelfClient = ctx.obj
    client.revoke_share(library_id, user_id)
    click.echo(f"Revoked access for {user_id}")


# --- Invite commands ---


@cli.group()
def invite() -> None:
    """Inspect and accept invitations."""


@invite.command("show")
@click.argument("token")
@click.pass_context
def invite_show(ctx: click.Context, token: str) -> None:
    client: ShelfClient = ctx.obj
    _output(ctx, client.get_invite(token))


@invite.command("accept")
@click.argument("token")
@click.pass_context
def invite_accept(ctx: click.Context, token: str) -> None:
    """Accept an invitation addressed to you."""
    client: ShelfClient = ctx.obj
    library_data = client.accept_invite(token)
    click.echo(f"Joined library '{library_data['name']}' ({library_data['id']})")


# --- Prompt commands ---


@cli.group()
def prompt() -> None:
    """Manage prompts."""


@prompt.command("list")
@click.option("--group", "group_id", default=None)
@click.option("--library", "library_id", default=None)
@click.pass_context
def prompt_list(ctx: click.Context, group_id: str | None, library_id: str | None) -> None:
    """List prompts of a group or a library."""
    client: ShelfClient = ctx.obj
    if not group_id and not library_id:
        raise click.UsageError("Pass --group or --library")
    params: dict[str, Any] = {}
    if group_id:
        params["group_id"] = group_id
    if library_id:
        params["library_id"] = library_id
    data = client.list_prompts(**params)
    _output(ctx, data, ["id", "positive_prompt", "model", "wildcard_count", "is_favorite"])


@prompt.command("create")
@click.option("--group", "group_id", required=True)
@click.option("--text", "positive_prompt", default=None, help="Positive prompt (default: stdin)")
@click.option("--negative", "negative_prompt", default=None)
@click.option("--notes", default=None)
@click.option("--steps", type=int, default=20)
@click.option("--cfg", "cfg_scale", type=float, default=7.0)
@click.option("--sampler", default=None)
@click.option("--model", default=None)
@click.option("--seed", type=int, default=None)
@click.option("--width", type=int, default=512)
@click.option("--height", type=int, default=512)
@click.pass_context
def prompt_create(ctx: click.Context, group_id: str, positive_prompt: str | None, **fields: Any) -> None:
    """Create a prompt. Reads the positive prompt from --text or stdin."""
    client: ShelfClient = ctx.obj
    if positive_prompt is None:
        positive_prompt = sys.stdin.read()
    data = {"group_id": group_id, "positive_prompt": positive_prompt, **fields}
    result = client.create_prompt(data)
    _output(ctx, result)


# --- Search ---


@cli.command()
@click.argument("library_id")
@click.argument("query")
@click.option("--favorites", is_flag=True, default=False)
@click.pass_context
def search(ctx: click.Context, library_id: str, query: str, favorites: bool) -> None:
    """Search a library's prompts."""
    client: ShelfClient = ctx.obj
    data = client.search(library_id, query, favorites)
    _output(ctx, data.get("prompts", []), ["id", "positive_prompt", "is_favorite", "created_at"])


# --- Analyze (offline) ---


@cli.command()
@click.argument("text", required=False)
@click.pass_context
def analyze(ctx: click.Context, text: str | None) -> None:
    """Detect wildcard syntax in TEXT (or stdin) without calling the API."""
    if text is None:
        text = sys.stdin.read()
    analysis = analyze_template(text)
    if ctx.meta.get("output_format") == "json":
        _output(ctx, analysis.to_dict())
        return

    click.echo(
        f"Wildcards: {analysis.wildcard_count}  "
        f"Complexity: {complexity_label(analysis.complexity)}"
    )
    if analysis.categories:
        click.echo(f"Categories: {', '.join(analysis.categories)}")
    if analysis.wildcards:
        click.echo(
            _format_table(
                [
                    {"position": w.position, "type": w.type, "text": w.text}
                    for w in analysis.wildcards
                ],
                ["position", "type", "text"],
            )
        )


if __name__ == "__main__":
    cli()
