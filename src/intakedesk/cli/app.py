from __future__ import annotations

import json

import typer
import uvicorn

from intakedesk.api.app import create_app
from intakedesk.config import get_settings
from intakedesk.core.auth import hash_password
from intakedesk.core.file_store import FileStore
from intakedesk.db.init import init_database
from intakedesk.db.repositories import Repository
from intakedesk.db.session import SessionLocal
from intakedesk.logging_config import configure_logging

app = typer.Typer(help="IntakeDesk CLI")
admin_app = typer.Typer(help="Manage admin accounts")
files_app = typer.Typer(help="Stored file commands")

app.add_typer(admin_app, name="admin")
app.add_typer(files_app, name="files")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


@app.command("init")
def init_cmd() -> None:
    """Create the data directory and tables, then bootstrap the first admin."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    configure_logging(log_level)
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app(settings)
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)


@admin_app.command("create")
def admin_create(
    username: str = typer.Option(..., "--username"),
    email: str = typer.Option(..., "--email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, confirmation_prompt=True),
    role: str = typer.Option("super_admin", "--role"),
    force: bool = typer.Option(False, "--force", help="Create even when admins already exist"),
) -> None:
    configure_logging()
    ensure_initialized()
    if role not in {"admin", "super_admin"}:
        raise typer.BadParameter("role must be admin or super_admin")
    if len(password) < 6:
        raise typer.BadParameter("password must be at least 6 characters")

    settings = get_settings()
    with SessionLocal() as db:
        repo = Repository(db)
        if repo.count_admins() and not force:
            raise typer.BadParameter("an admin already exists; pass --force to add another")
        admin = repo.create_admin(
            username=username,
            email=email.lower(),
            password_hash=hash_password(password, rounds=settings.bcrypt_rounds),
            role=role,
        )
        typer.echo(json.dumps({"id": admin.id, "username": admin.username, "role": admin.role}, indent=2))


@admin_app.command("list")
def admin_list() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        admins = Repository(db).list_admins()
        data = [
            {
                "id": admin.id,
                "username": admin.username,
                "email": admin.email,
                "role": admin.role,
                "is_active": admin.is_active,
                "last_login": admin.last_login.isoformat() if admin.last_login else None,
            }
            for admin in admins
        ]
        typer.echo(json.dumps(data, indent=2))


@files_app.command("stats")
def files_stats(owner: str | None = typer.Option(None, "--owner")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        typer.echo(json.dumps(FileStore(db).storage_stats(owner), indent=2, default=str))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
