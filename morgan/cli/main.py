from enum import Enum
from typing import Optional

import typer
from rich import print
from rich.table import Table
from sqlalchemy.orm import Session

from morgan.config.settings import get_settings
from morgan.db.database import get_engine, init_db
from morgan.services.posts import get_post_meta, recent_posts
from morgan.tools.logging_setup import setup_logging
from morgan.workflows.run_ingest import (
    activate as activate_schedule,
    deactivate as deactivate_schedule,
    run_scrape,
    set_cron_time,
    settings_snapshot,
    tick as run_tick,
)


class CronTime(str, Enum):
    hourly = "hourly"
    twicedaily = "twicedaily"
    daily = "daily"


app = typer.Typer(help="Ingest self posts from r/wordpress into a local post store")


@app.callback()
def main():
    setup_logging()


def _fail(e: Exception) -> None:
    print(f"[bold red]Run failed[/bold red]: {e}")
    raise SystemExit(1)


@app.command()
def doctor():
    """Check config + DB connectivity."""
    s = get_settings()
    print("[bold green]Config loaded[/bold green]")
    print("Source:", s.reddit_source_url, "| Domain:", s.reddit_self_domain)
    print("Database:", s.database_url)
    init_db()
    print("[bold green]DB OK[/bold green]")


@app.command()
def run():
    """Fetch the listing once and store new self posts."""
    try:
        init_db()
        result = run_scrape()
        print("[bold green]Run complete[/bold green]")
        print(result)
    except Exception as e:
        _fail(e)


@app.command()
def activate():
    """Schedule the recurring scrape using the saved cron time."""
    try:
        init_db()
        next_run = activate_schedule()
        print(f"[bold green]Activated[/bold green]: next run {next_run:%Y-%m-%d %H:%M:%S} UTC")
    except Exception as e:
        _fail(e)


@app.command()
def deactivate():
    """Remove the scheduled scrape."""
    try:
        init_db()
        removed = deactivate_schedule()
        print(f"[bold green]Deactivated[/bold green]: {removed} event(s) cleared")
    except Exception as e:
        _fail(e)


@app.command()
def tick():
    """Run the scrape if it is due. Call this from system cron every few minutes."""
    try:
        init_db()
        ran = run_tick()
        print(f"Ran: {', '.join(ran) if ran else 'nothing due'}")
    except Exception as e:
        _fail(e)


@app.command()
def settings(
    cron_time: Optional[CronTime] = typer.Option(
        None, "--cron-time", help="How often to scrape; saving reschedules the scrape."
    ),
):
    """Show settings, or save a new cron time."""
    try:
        init_db()
        if cron_time is not None:
            set_cron_time(cron_time.value)
            print("[bold green]Saved[/bold green]")

        snap = settings_snapshot()
        print("Cron time:", snap["cron_time"])
        print("Cursor:", snap["cursor"] or "(none)")
        nxt = snap["next_run"]
        print("Next run:", f"{nxt:%Y-%m-%d %H:%M:%S} UTC" if nxt else "(not scheduled)")
    except Exception as e:
        _fail(e)


@app.command()
def posts(limit: int = typer.Option(5, "--limit", "-n", min=1)):
    """List the latest ingested posts."""
    table = Table(title="Latest posts")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Ups", justify="right")
    table.add_column("Name")

    try:
        init_db()
        with Session(get_engine()) as session:
            for p in recent_posts(session, limit=limit):
                meta = get_post_meta(session, p.id)
                table.add_row(
                    str(p.id),
                    p.title,
                    meta.get("reddit_author") or "",
                    meta.get("reddit_ups") or "",
                    meta.get("reddit_name") or "",
                )
    except Exception as e:
        _fail(e)

    print(table)


if __name__ == "__main__":
    app()
