import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import settings
from database import initialize_database
from errors import CatalogError
from library import Library

console = Console()

app = typer.Typer(help="E-book catalog admin CLI")


@app.command("init-db")
def cli_init_db(db_file: Optional[str] = typer.Option(None, "--db-file", help="SQLite file (default: LIBRARY_DB_FILE)")):
    """Create the books table if it does not exist."""
    pool = initialize_database(db_file or settings.database_file)
    pool.close()
    console.print(f"[green]Database ready:[/] {escape(pool.db_file)}")


@app.command("list")
def cli_list(db_file: Optional[str] = typer.Option(None, "--db-file", help="SQLite file (default: LIBRARY_DB_FILE)")):
    """List all books, newest first."""
    lib = Library(db_file=db_file)
    try:
        books = lib.list_books()
    except CatalogError as e:
        console.print(f"[bold red]Error:[/] {escape(e.message)}")
        raise typer.Exit(code=1)
    finally:
        lib.close()

    if not books:
        console.print("No books in catalog.")
        return

    table = Table(title="E-book catalog", header_style="bold cyan")
    table.add_column("ID", style="magenta", no_wrap=True)
    table.add_column("Title", style="white")
    table.add_column("PDF", style="white")
    table.add_column("Created", style="dim")
    for book in books:
        table.add_row(str(book.id), escape(book.title), escape(book.pdf_url), book.created_at or "")
    console.print(table)
    console.print(f"[dim]{len(books)} book(s)[/]")


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Run the API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    console.print(f"Starting API on http://{host}:{port}/")
    args = [sys.executable, "-m", "uvicorn", "api:app", "--host", host, "--port", str(port)]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args, check=False)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` could not be started. Make sure it is installed.")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
