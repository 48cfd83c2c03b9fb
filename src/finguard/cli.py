"""Typer CLI for Finguard."""

import asyncio

import typer
from rich.console import Console

app = typer.Typer(name="finguard", help="Finguard: tenant authorization and provisioning core")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Finguard API server."""
    import uvicorn
    from finguard.app import create_app

    console.print(f"[bold green]Starting Finguard on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""
    from finguard.deps import get_db

    async def _run():
        db = get_db()
        await db.init()
        try:
            await db.create_all()
        finally:
            await db.close()

    asyncio.run(_run())
    console.print("[bold green]Database schema created[/bold green]")


@app.command()
def token(
    principal_id: str = typer.Argument(..., help="Principal id to sign"),
):
    """Issue a principal token signed with the configured secret (development only)."""
    from finguard.common.config import get_settings
    from finguard.common.security import issue_principal_token

    if get_settings().environment != "development":
        console.print("[bold red]Refusing to issue tokens outside development[/bold red]")
        raise typer.Exit(1)
    console.print(issue_principal_token(principal_id))


@app.command("audit-verify")
def audit_verify(
    company_id: str = typer.Argument(..., help="Company whose audit chain to verify"),
):
    """Verify a company's audit chain directly against the database."""
    from finguard.deps import get_audit_ledger, get_db

    async def _run() -> dict:
        db = get_db()
        await db.init()
        try:
            async with db.get_session() as session:
                return await get_audit_ledger().verify_chain(session, company_id)
        finally:
            await db.close()

    result = asyncio.run(_run())
    if result["valid"]:
        console.print(
            f"[bold green]VALID[/bold green] — {result['records_checked']} records checked"
        )
    else:
        console.print(
            f"[bold red]BROKEN[/bold red] at {result['break_at']} "
            f"after {result['records_checked']} valid records"
        )
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Finguard server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
