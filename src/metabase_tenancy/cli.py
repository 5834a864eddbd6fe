"""Typer CLI for Metabase-Tenancy."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="tenancy", help="Metabase-Tenancy: per-tenant dashboard provisioning")
console = Console()


def _run_with_service(func):
    """Run ``func(service)`` against an initialised database, then clean up."""
    from metabase_tenancy.deps import get_db, get_metabase_client, get_resolution_service

    async def runner():
        db = get_db()
        await db.init()
        await db.create_all()
        try:
            return await func(get_resolution_service())
        finally:
            await get_metabase_client().aclose()
            await db.close()

    return asyncio.run(runner())


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind host"),
    port: Optional[int] = typer.Option(None, help="Bind port"),
):
    """Start the Metabase-Tenancy API server."""
    import uvicorn
    from metabase_tenancy.app import create_app
    from metabase_tenancy.common.config import get_settings
    from metabase_tenancy.common.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level)
    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting Metabase-Tenancy on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def resolve(
    project_id: int = typer.Argument(..., help="Tenant (project) id"),
    module: Optional[str] = typer.Option(None, help="Module name, e.g. Sales"),
):
    """Resolve (provisioning if needed) a tenant's dashboard id."""
    from metabase_tenancy.common.exceptions import TenancyError

    try:
        dashboard_id = _run_with_service(lambda svc: svc.resolve(project_id, module))
    except TenancyError as e:
        console.print(f"[bold red]{e.code}[/bold red] — {e.message}")
        raise typer.Exit(1)
    console.print(f"[bold]{dashboard_id}[/bold]")


@app.command()
def token(
    project_id: int = typer.Argument(..., help="Tenant (project) id"),
    email: str = typer.Argument(..., help="User email"),
    first_name: Optional[str] = typer.Option(None, help="User first name"),
    last_name: Optional[str] = typer.Option(None, help="User last name"),
):
    """Sign an SSO token for a tenant (offline, no Metabase calls)."""
    from metabase_tenancy.deps import get_token_issuer

    profile = {"first_name": first_name, "last_name": last_name}
    console.print(get_token_issuer().issue_token(project_id, email, profile), soft_wrap=True)


@app.command()
def mappings():
    """List stored tenant mappings."""
    rows = _run_with_service(lambda svc: svc.list_mappings())

    table = Table(title=f"{len(rows)} tenant mappings")
    for column in ("Project", "Group", "Folder", "Dashboards", "Updated"):
        table.add_column(column)
    for m in rows:
        dashboards = ", ".join(f"{k}={v}" for k, v in m.dashboards.items())
        table.add_row(
            str(m.tenant_id), str(m.group_id), str(m.folder_id),
            dashboards, m.updated_at.isoformat(),
        )
    console.print(table)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8989", help="Server URL"),
):
    """Check Metabase-Tenancy server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(
            f"[bold green]{data['status']}[/bold green] — v{data['version']} "
            f"(db: {data['dbState']}, projects: {data['projectsCount']})"
        )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
