"""SecureShift CLI tool (shiftctl)."""

import logging
from datetime import timedelta

import typer

app = typer.Typer(name="shiftctl", help="SecureShift CLI")
db_app = typer.Typer(help="Database management commands")
roles_app = typer.Typer(help="Role and permission inspection")
app.add_typer(db_app, name="db")
app.add_typer(roles_app, name="roles")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@db_app.command("init")
def db_init():
    """Create all tables that do not exist yet."""
    from secureshift.db.session import init_db

    init_db()
    typer.echo("Tables created (or already present)")


@db_app.command("seed")
def db_seed(
    sample: bool = typer.Option(False, "--sample", help="Also insert demo branch, users and shifts"),
):
    """Seed system roles, the super admin, and optionally sample data."""
    from secureshift.db.session import SessionLocal
    from secureshift.db.seeds.seed_roles import seed_roles
    from secureshift.db.seeds.seed_super_admin import seed_super_admin
    from secureshift.db.seeds.seed_sample_data import seed_sample_data

    db = SessionLocal()
    try:
        count = seed_roles(db)
        admin = seed_super_admin(db)
        if sample:
            seed_sample_data(db)
    finally:
        db.close()
    typer.echo(f"Seeded {count} roles; super admin id={admin.id}")


@roles_app.command("show")
def roles_show(role: str = typer.Argument(..., help="Role name")):
    """Print a role's inheritance chain and effective permissions."""
    from secureshift.db.session import SessionLocal
    from secureshift.services.role_service import role_service

    db = SessionLocal()
    try:
        resolver = role_service.resolver(db)
        chain = resolver.inheritance_chain(role)
        perms = sorted(p.value for p in resolver.resolve_effective_permissions(role))
    finally:
        db.close()
    typer.echo(" -> ".join(chain))
    if not perms:
        typer.echo("  (no permissions)")
    for perm in perms:
        typer.echo(f"  {perm}")


@app.command("token")
def issue_token(
    user_id: int = typer.Option(..., "--user-id", help="Subject user id"),
    role: str = typer.Option(..., "--role", help="Role claim"),
    minutes: int = typer.Option(60, help="Lifetime in minutes"),
):
    """Mint a bearer token for local testing."""
    from secureshift.core.security import create_access_token

    typer.echo(create_access_token(
        {"sub": str(user_id), "role": role}, expires_delta=timedelta(minutes=minutes),
    ))


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("secureshift.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
