import logging
import os
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel

from auth import LoginRedirect, SessionManager
from config import Settings, settings as default_settings
from errors import CatalogError
from http_client import cleanup_http_client
from library import Library

logging.basicConfig(level=default_settings.log_level)
logger = logging.getLogger(__name__)


# --- Models ---
class BookModel(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    thumbnail_base64: Optional[str] = None
    pdf_url: str


class BookDetailModel(BookModel):
    created_at: str


class PaginationModel(BaseModel):
    currentPage: int
    totalPages: int
    totalBooks: int


class PaginatedBooksModel(BaseModel):
    books: List[BookDetailModel]
    pagination: PaginationModel


class BookCreateModel(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail_base64: Optional[str] = None
    pdf_url: Optional[str] = None


class BookUpdateModel(BookCreateModel):
    old_pdf_url: Optional[str] = None


class LoginModel(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


def _message(text: str) -> Dict[str, object]:
    return {"success": True, "message": text}


# --- Dependencies ---
def get_library(request: Request) -> Library:
    return request.app.state.library


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def require_session(request: Request, sessions: SessionManager = Depends(get_sessions)) -> None:
    """Dependency guarding every admin route."""
    sessions.authorize(request)


def create_app(settings: Optional[Settings] = None, library: Optional[Library] = None,
               sessions: Optional[SessionManager] = None) -> FastAPI:
    """Build the API with its collaborators; anything not passed in is built from ``settings``."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            cleanup_http_client()
            app.state.library.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug,
                  lifespan=lifespan)
    app.state.settings = settings
    app.state.library = library or Library(settings=settings)
    app.state.sessions = sessions or SessionManager(settings)

    # --- Error handling ---
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})

    @app.exception_handler(LoginRedirect)
    async def login_redirect_handler(request: Request, exc: LoginRedirect):
        return RedirectResponse(exc.location, status_code=302)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid request"})

    # --- Health ---
    @app.get("/health")
    def health(library: Library = Depends(get_library)):
        """Lightweight health check with a quick database probe."""
        db_ok = True
        try:
            with library.pool.connection() as conn:
                conn.execute("SELECT 1")
        except Exception as e:
            logger.warning(f"Health check database probe failed: {e}")
            db_ok = False
        return {"status": "healthy" if db_ok else "degraded", "db": db_ok}

    # --- Pages ---
    def _page(name: str) -> FileResponse:
        return FileResponse(os.path.join(settings.static_dir, name), media_type="text/html")

    @app.get("/login", include_in_schema=False)
    def login_page():
        return _page("login.html")

    @app.get("/dashboard", include_in_schema=False, dependencies=[Depends(require_session)])
    def dashboard_page():
        return _page("dashboard.html")

    # --- Authentication ---
    @app.post("/api/login")
    def login(payload: LoginModel, response: Response, sessions: SessionManager = Depends(get_sessions)):
        sessions.login(response, payload.username, payload.password)
        return _message("Login successful")

    @app.post("/api/logout")
    def logout(response: Response, sessions: SessionManager = Depends(get_sessions)):
        sessions.logout(response)
        return _message("Logout successful")

    @app.get("/api/check-auth", dependencies=[Depends(require_session)])
    def check_auth():
        return _message("Authentication valid")

    # --- Public catalog ---
    @app.get("/api/public/books", response_model=List[BookModel])
    def public_books(library: Library = Depends(get_library)):
        """All books, newest first. No authentication."""
        return [book.to_public_dict() for book in library.list_books()]

    # --- Protected CRUD ---
    @app.get("/api/books", response_model=PaginatedBooksModel, dependencies=[Depends(require_session)])
    def list_books(
        page: Optional[str] = Query(None, description="Page number, starting at 1"),
        limit: Optional[str] = Query(None, description="Books per page"),
        library: Library = Depends(get_library),
    ):
        books, pagination = library.list_books_paginated(page, limit)
        return {"books": [book.to_dict() for book in books], "pagination": pagination}

    @app.post("/api/books", status_code=201, dependencies=[Depends(require_session)])
    def create_book(payload: BookCreateModel, library: Library = Depends(get_library)):
        book = library.add_book(
            title=payload.title,
            description=payload.description,
            thumbnail_base64=payload.thumbnail_base64,
            pdf_url=payload.pdf_url,
        )
        return {**_message("Book added"), "book": book.to_dict()}

    @app.put("/api/books/{book_id}", dependencies=[Depends(require_session)])
    def update_book(book_id: int, payload: BookUpdateModel, library: Library = Depends(get_library)):
        library.update_book(
            book_id,
            title=payload.title,
            description=payload.description,
            thumbnail_base64=payload.thumbnail_base64,
            pdf_url=payload.pdf_url,
            old_pdf_url=payload.old_pdf_url,
        )
        return _message("Book updated")

    @app.delete("/api/books/{book_id}", dependencies=[Depends(require_session)])
    def delete_book(book_id: int, library: Library = Depends(get_library)):
        library.remove_book(book_id)
        return _message("Book deleted")

    return app


app = create_app()
