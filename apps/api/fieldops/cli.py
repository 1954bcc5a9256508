"""CLI tools for fieldops administration."""

from datetime import timedelta

import click

from fieldops.core.async_utils import run_async
from fieldops.core.config import settings
from fieldops.db.enums import Role
from fieldops.db.models import Account, AccountMembership, AccountSettings, User
from fieldops.db.session import SessionLocal
from fieldops.services import automation_service
from fieldops.services.automation_runner import run_due_automations


@click.group()
def cli():
    """Fieldops CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Account name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
@click.option("--owner-email", required=True, help="Owner email address")
@click.option("--timezone", "tz", default="America/Los_Angeles", show_default=True)
def create_account(name: str, slug: str, owner_email: str, tz: str):
    """
    Create an account with its owner membership.

    This is the bootstrap command for setting up a new tenant.
    The owner user is created if the email is not known yet.

    Example:
        fieldops create-account --name "Acme HVAC" --slug acme --owner-email owner@acme.com
    """
    slug = slug.lower().strip()
    if not slug.replace("-", "").replace("_", "").isalnum():
        raise click.BadParameter(
            "Slug must be alphanumeric (with optional hyphens/underscores)", param_hint="--slug"
        )

    with SessionLocal() as db:
        if db.query(Account).filter(Account.slug == slug).first():
            raise click.ClickException(f"Account with slug '{slug}' already exists")

        email = owner_email.lower().strip()
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email)
            db.add(user)

        account = Account(name=name, slug=slug, timezone=tz)
        db.add(account)
        db.flush()

        db.add(AccountMembership(user_id=user.id, account_id=account.id, role=Role.OWNER.value))
        db.add(AccountSettings(account_id=account.id, ai_automation={}))
        db.commit()

        click.echo(f"✓ Created account: {name}")
        click.echo(f"  ID: {account.id}")
        click.echo(f"  Slug: {slug}")
        click.echo(f"✓ {email} is the account owner")


@cli.command()
@click.option("--limit", type=int, default=None, help="Batch size (defaults to AUTOMATION_BATCH_SIZE)")
def run_automations(limit: int | None):
    """Process one batch of due automations across all accounts."""
    with SessionLocal() as db:
        summary = run_async(run_due_automations(db, limit=limit))
    click.echo(f"Attempted: {summary.attempted}, processed: {summary.processed}")
    for result in summary.results:
        click.echo(f"  {result.id} {result.type}: {result.status} ({result.message})")


@cli.command()
@click.option(
    "--minutes",
    type=int,
    default=None,
    help="Processing age threshold (defaults to AUTOMATION_STALE_MINUTES)",
)
def release_stale(minutes: int | None):
    """Fail automations stuck in processing."""
    minutes = minutes or settings.AUTOMATION_STALE_MINUTES
    with SessionLocal() as db:
        released = automation_service.release_stale_automations(db, timedelta(minutes=minutes))
    click.echo(f"Released {released} stale automations")


if __name__ == "__main__":
    cli()
