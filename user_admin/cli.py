"""User management CLI tool (umsctl)."""

import typer
from sqlalchemy.engine import make_url

app = typer.Typer(name="umsctl", help="User Management System CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


def _mysql_connect():
    """Connect to the MySQL server named in DATABASE_URL, without selecting a database."""
    import pymysql
    from user_admin.core.config import settings

    url = make_url(settings.DATABASE_URL)
    conn = pymysql.connect(
        host=url.host or "localhost",
        port=url.port or 3306,
        user=url.username,
        password=url.password or "",
    )
    return conn, url.database


@db_app.command("create")
def db_create():
    """Create the MySQL database if it doesn't exist."""
    conn, db_name = _mysql_connect()
    try:
        cursor = conn.cursor()
        cursor.execute(f"CREATE DATABASE IF NOT EXISTS `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
        typer.echo(f"✅ Database '{db_name}' created (or already exists)")
    finally:
        conn.close()


@db_app.command("init")
def db_init():
    """Create all tables."""
    import user_admin.models  # noqa: F401  registers every table on Base.metadata
    from user_admin.db.base import Base
    from user_admin.db.session import engine

    Base.metadata.create_all(bind=engine)
    typer.echo("✅ Tables created")


@db_app.command("seed")
def db_seed():
    """Seed roles and the admin user."""
    from user_admin.db.session import SessionLocal
    from user_admin.db.seeds.seed_roles import seed_roles
    from user_admin.db.seeds.seed_admin import seed_admin

    db = SessionLocal()
    try:
        seed_roles(db)
        seed_admin(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset():
    """Drop and recreate the database (DANGER)."""
    confirm = typer.confirm("⚠️  This will DROP the entire database. Continue?")
    if not confirm:
        raise typer.Abort()

    conn, db_name = _mysql_connect()
    try:
        cursor = conn.cursor()
        cursor.execute(f"DROP DATABASE IF EXISTS `{db_name}`")
        cursor.execute(f"CREATE DATABASE `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
        typer.echo(f"✅ Database '{db_name}' reset")
    finally:
        conn.close()


@app.command("gen-password")
def gen_password(
    length: int = typer.Option(12, help="Password length (min 8)"),
):
    """Print a random password that satisfies the strength policy."""
    from user_admin.core.security import generate_secure_password

    try:
        typer.echo(generate_secure_password(length))
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("user_admin.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
