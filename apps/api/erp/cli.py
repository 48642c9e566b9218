"""CLI tools for ERP administration."""

import click
from sqlalchemy.exc import SQLAlchemyError

from erp.db.enums import Role
from erp.db.models import User
from erp.db.session import SessionLocal, engine


@click.group()
def cli():
    """ERP CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="Admin email address")
@click.option("--password", required=True, prompt=True, hide_input=True, help="Admin password")
@click.option("--name", default=None, help="Full name")
@click.option("--force", is_flag=True, help="Create even if an admin already exists")
def create_admin(email: str, password: str, name: str | None, force: bool):
    """
    Create an admin account.

    This is the bootstrap command; further users are created through the API.

    Example:
        python -m erp.cli create-admin --email "admin@example.com" --name "Ada"
    """
    from erp.core.security import hash_password
    from erp.services.identity_service import get_user_by_email, normalize_email
    from erp.services.user_service import MAX_PASSWORD_BYTES, MIN_PASSWORD_LENGTH

    db = SessionLocal()
    try:
        existing_admin = db.query(User).filter(User.role == Role.ADMIN.value).first()
        if existing_admin and not force:
            click.echo(f"❌ An admin already exists ({existing_admin.email}); use --force to add another")
            return

        if get_user_by_email(db, email):
            click.echo(f"❌ User already exists: {email}")
            return

        if len(password) < MIN_PASSWORD_LENGTH:
            click.echo(f"❌ Password must be at least {MIN_PASSWORD_LENGTH} characters")
            return

        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            click.echo(f"❌ Password must be at most {MAX_PASSWORD_BYTES} bytes")
            return

        user = User(
            email=normalize_email(email),
            full_name=name,
            role=Role.ADMIN.value,
            password_hash=hash_password(password),
        )
        db.add(user)
        db.commit()

        click.echo(f"✓ Created admin: {user.email}")
        click.echo(f"  ID: {user.id}")

    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
def init_db():
    """
    Create all tables directly from the models (development only).

    Use `alembic upgrade head` for real databases.
    """
    from erp.db.base import Base
    import erp.db.models  # noqa: F401 - register models on Base.metadata

    Base.metadata.create_all(bind=engine)
    click.echo(f"✓ Created tables on {engine.url.render_as_string(hide_password=True)}")


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        python -m erp.cli revoke-sessions --email "user@example.com"
    """
    from erp.services.identity_service import get_user_by_email
    from erp.services.user_service import revoke_sessions as revoke

    db = SessionLocal()
    try:
        user = get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        revoke(db, user.id)

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")

    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
