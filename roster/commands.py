import click
from flask import current_app
from sqlalchemy.exc import IntegrityError

from .backups import create_backup
from .errors import SystemFailure
from .extensions import db
from .models import User


def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create the database tables."""
        db.create_all()
        click.echo("Database initialized")

    @app.cli.command("create-admin")
    @click.argument("username")
    @click.password_option()
    def create_admin(username, password):
        """Create an administrator account."""
        username = username.strip()
        password = password.strip()
        cfg = current_app.config
        if not username or len(username) > cfg["MAX_USERNAME_LENGTH"]:
            raise click.BadParameter("username must be 1-%d characters" % cfg["MAX_USERNAME_LENGTH"])
        if not password or len(password) > cfg["MAX_PASSWORD_LENGTH"]:
            raise click.BadParameter("password must be 1-%d characters" % cfg["MAX_PASSWORD_LENGTH"])

        user = User(username=username)
        user.set_password(password)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise click.ClickException(f"User {username} already exists")
        click.echo(f"Admin user {username} created")

    @app.cli.command("backup")
    def backup():
        """Dump the database into the backup directory (for cron)."""
        try:
            name = create_backup()
        except SystemFailure as exc:
            raise click.ClickException(exc.message)
        click.echo(name)
