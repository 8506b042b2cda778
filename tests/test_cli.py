import os
import sys
from unittest.mock import patch

from typer.testing import CliRunner

from main import app

runner = CliRunner()


def test_init_db_creates_file(tmp_path):
    db_file = str(tmp_path / "cli.db")
    result = runner.invoke(app, ["init-db", "--db-file", db_file])
    assert result.exit_code == 0
    assert "Database ready" in result.stdout
    assert os.path.exists(db_file)


def test_list_no_books(settings):
    result = runner.invoke(app, ["list", "--db-file", settings.database_file])
    assert result.exit_code == 0
    assert "No books in catalog." in result.stdout


def test_list_books(lib, settings):
    lib.add_book(title="Sapiens", thumbnail_base64="x", pdf_url="https://store/ebook-pdf/s.pdf")
    result = runner.invoke(app, ["list", "--db-file", settings.database_file])
    assert result.exit_code == 0
    assert "Sapiens" in result.stdout
    assert "1 book(s)" in result.stdout


@patch("subprocess.run")
def test_serve_command(mock_subprocess_run):
    result = runner.invoke(app, ["serve", "--host", "0.0.0.0", "--port", "9000"])
    assert result.exit_code == 0
    assert "Starting API on http://0.0.0.0:9000/" in result.stdout
    args = mock_subprocess_run.call_args[0][0]
    assert args[:4] == [sys.executable, "-m", "uvicorn", "api:app"]
    assert args[-4:] == ["--host", "0.0.0.0", "--port", "9000"]
