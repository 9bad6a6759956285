"""CLI interface: thin wrapper over SummaryService, AuthService and the HTTP app."""

import logging
from pathlib import Path

import typer

from tubebrief.auth import AuthService, UsernameTakenError, UserNotFoundError, invitation_url
from tubebrief.config import settings
from tubebrief.ingestion.youtube import ResolutionError, TranscriptUnavailableError
from tubebrief.models import User
from tubebrief.service import SummaryNotFoundError, SummaryService
from tubebrief.storage.sqlite import Database, SQLiteSummaryRepository, SQLiteUserRepository
from tubebrief.summarizer import SummarizationError

app = typer.Typer(
    name="tubebrief",
    help="AI summaries of YouTube videos: key points, outline and annotated screenshots.",
    no_args_is_help=True,
)

# Shell access is trusted like an admin session.
_OPERATOR = User(id=0, username="cli", is_admin=True)


def _get_services() -> tuple[SummaryService, AuthService]:
    """Create service instances with default dependencies over one database."""
    settings.ensure_dirs()
    db = Database()
    return (
        SummaryService(repository=SQLiteSummaryRepository(db)),
        AuthService(SQLiteUserRepository(db)),
    )


def _user_or_exit(auth: AuthService, username: str) -> User:
    try:
        return auth.get_user_by_username(username)
    except UserNotFoundError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", help="Host to bind to."),
    port: int = typer.Option(settings.port, "--port", help="Port to bind to."),
) -> None:
    """Start the tubebrief HTTP API."""
    import uvicorn

    from tubebrief.api.app import create_app

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    svc, auth = _get_services()
    typer.echo(f"Starting tubebrief on http://{host}:{port}")
    uvicorn.run(create_app(svc, auth), host=host, port=port, log_level=settings.log_level.lower())


@app.command(name="create-user")
def create_user(
    username: str = typer.Argument(..., help="Login name for the new account."),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, help="Initial password."),
    admin: bool = typer.Option(False, "--admin", help="Grant admin rights."),
) -> None:
    """Create an account with a known password."""
    _, auth = _get_services()
    try:
        user = auth.create_user(username, password, is_admin=admin)
    except UsernameTakenError as e:
        typer.echo(f"⚠️  {e}", err=True)
        raise typer.Exit(code=1)
    role = "admin" if user.is_admin else "user"
    typer.echo(f"✅ Created {role}: {user.username} (id {user.id})")


@app.command()
def invite(
    username: str = typer.Argument(..., help="Login name reserved for the invitee."),
    admin: bool = typer.Option(False, "--admin", help="Invitee becomes an admin."),
) -> None:
    """Issue a single-use invitation link."""
    _, auth = _get_services()
    try:
        user = auth.issue_invitation(username, is_admin=admin)
    except UsernameTakenError as e:
        typer.echo(f"⚠️  {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✉️  Invitation for {user.username}")
    typer.echo(f"   Link:    {invitation_url(user.invitation_token)}")
    typer.echo(f"   Expires: {user.token_expiry:%Y-%m-%d %H:%M} UTC")


@app.command()
def add(
    url: str = typer.Argument(..., help="YouTube video URL to summarize."),
    user: str = typer.Option(..., "--user", "-u", help="Username that will own the summary."),
) -> None:
    """Summarize a YouTube video on behalf of a user."""
    svc, auth = _get_services()
    owner = _user_or_exit(auth, user)
    typer.echo(f"📝 Summarizing: {url}...")
    try:
        summary = svc.create_summary(url, owner.id)
    except (ResolutionError, TranscriptUnavailableError, SummarizationError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Summary {summary.id}: {summary.video_title}")
    typer.echo(f"   Author:      {summary.video_author}")
    typer.echo(f"   Key points:  {len(summary.key_points)}")
    typer.echo(f"   Screenshots: {len(summary.screenshots)}")


@app.command(name="list")
def list_summaries(
    user: str | None = typer.Option(None, "--user", "-u", help="Only this user's summaries."),
) -> None:
    """List stored summaries, newest first."""
    svc, auth = _get_services()
    if user:
        summaries = svc.list_summaries(_user_or_exit(auth, user))
    else:
        summaries = svc.list_all_summaries()
    if not summaries:
        typer.echo("No summaries yet. Use 'tubebrief add <url> --user <name>' to create one.")
        return
    for s in summaries:
        typer.echo(f"  {s.id:>4}. {s.video_id}  {s.created_at:%Y-%m-%d}  {s.video_author:<20s}  {s.video_title}")


@app.command()
def export(
    summary_id: int = typer.Argument(..., help="Summary ID."),
    fmt: str = typer.Option("markdown", "--format", help="Output format: markdown, html or transcript."),
    output: str | None = typer.Option(None, "--output", "-o", help="Save to file."),
) -> None:
    """Export a summary as a readable document."""
    svc, _ = _get_services()
    try:
        filename, rendered = svc.export(summary_id, _OPERATOR, fmt)
    except (SummaryNotFoundError, TranscriptUnavailableError, ValueError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    if output:
        target = Path(output)
        if target.is_dir():
            target = target / filename
        target.write_text(rendered, encoding="utf-8")
        typer.echo(f"✅ Exported: {target}")
    else:
        typer.echo(rendered)
