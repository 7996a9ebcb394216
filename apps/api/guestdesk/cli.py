"""CLI tools for GuestDesk administration."""

from uuid import UUID

import anyio
import click

from guestdesk.db.enums import Role
from guestdesk.db.models import Client, Message, Property, Template, User
from guestdesk.db.session import SessionLocal


@click.group()
def cli():
    """GuestDesk CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Client (company) name")
def create_client(name: str):
    """
    Create a client (tenant).

    Example:
        python -m guestdesk.cli create-client --name "Seaside Rentals"
    """
    db = SessionLocal()
    try:
        client = Client(name=name.strip())
        db.add(client)
        db.commit()
        click.echo(f"✓ Created client: {client.name}")
        click.echo(f"  ID: {client.id}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--client-id", required=True, type=click.UUID, help="Owning client ID")
@click.option("--name", required=True, help="Property name")
@click.option("--address", default=None, help="Optional street address")
def create_property(client_id: UUID, name: str, address: str | None):
    """Create a property under a client."""
    db = SessionLocal()
    try:
        if db.get(Client, client_id) is None:
            click.echo(f"❌ Client not found: {client_id}")
            return
        prop = Property(client_id=client_id, name=name.strip(), address=address)
        db.add(prop)
        db.commit()
        click.echo(f"✓ Created property: {prop.name}")
        click.echo(f"  ID: {prop.id}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--client-id", required=True, type=click.UUID, help="Owning client ID")
@click.option("--name", required=True, help="Template name")
@click.option("--body", required=True, help="Template body")
def create_template(client_id: UUID, name: str, body: str):
    """Create a reply template that template/auto_send rules can reference."""
    db = SessionLocal()
    try:
        if db.get(Client, client_id) is None:
            click.echo(f"❌ Client not found: {client_id}")
            return
        template = Template(client_id=client_id, name=name.strip(), body=body)
        db.add(template)
        db.commit()
        click.echo(f"✓ Created template: {template.name}")
        click.echo(f"  ID: {template.id}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Operator email")
@click.option("--name", required=True, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.AGENT.value,
    show_default=True,
)
def create_user(email: str, name: str, role: str):
    """Create a console operator."""
    db = SessionLocal()
    try:
        email = email.strip().lower()
        if db.query(User).filter(User.email == email).first():
            click.echo(f"❌ User already exists: {email}")
            return
        user = User(email=email, name=name.strip(), role=role)
        db.add(user)
        db.commit()
        click.echo(f"✓ Created user {email} with role: {role}")
        click.echo(f"  ID: {user.id}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Operator email")
def mint_token(email: str):
    """
    Print a session token for local use (set it as the guestdesk_session cookie).

    Example:
        python -m guestdesk.cli mint-token --email "agent@example.com"
    """
    from guestdesk.core.security import create_session_token

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not user.is_active:
            click.echo(f"❌ Active user not found: {email}")
            return
        click.echo(create_session_token(user.id, user.role, user.token_version))
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """Revoke all sessions for a user by bumping their token_version."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--message-id", required=True, type=click.UUID, help="Analysed guest message")
def evaluate_rules(message_id: UUID):
    """Re-run auto-rule evaluation for a message using its stored analysis."""
    from guestdesk.services import rule_engine

    db = SessionLocal()
    try:
        message = db.get(Message, message_id)
        if message is None:
            click.echo(f"❌ Message not found: {message_id}")
            return
        if message.analysis is None:
            click.echo("❌ Message has no analysis; nothing to evaluate")
            return

        results = rule_engine.evaluate(
            db, message.thread_id, message.id, message.analysis.intent, message.analysis.risk
        )
        click.echo(f"✓ {len(results)} rule(s) fired")
        for result in results:
            click.echo(f"  {result.rule_id} ({result.action})")
    finally:
        db.close()


@cli.command()
@click.option("--batch-size", default=10, show_default=True, help="Max jobs to process")
def run_jobs(batch_size: int):
    """Process one batch of due background jobs and exit."""
    from guestdesk import worker

    db = SessionLocal()
    try:
        processed = anyio.run(worker.run_once, db, batch_size)
        click.echo(f"✓ Processed {processed} job(s)")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
