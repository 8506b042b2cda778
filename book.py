from __future__ import annotations


class Book:
    """Represents a single e-book entry in the catalog."""

    def __init__(self, title: str, pdf_url: str, id: int | None = None, description: str | None = None,
                 thumbnail_base64: str | None = None, created_at: str | None = None) -> None:
        self.id = id
        self.title = title
        self.description = description
        self.thumbnail_base64 = thumbnail_base64
        self.pdf_url = pdf_url
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} (#{self.id})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "thumbnail_base64": self.thumbnail_base64,
            "pdf_url": self.pdf_url,
            "created_at": self.created_at,
        }

    def to_public_dict(self) -> dict:
        """Row shape for the public listing, which leaves out created_at."""
        data = self.to_dict()
        data.pop("created_at")
        return data

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            title=data["title"],
            description=data.get("description"),
            thumbnail_base64=data.get("thumbnail_base64"),
            pdf_url=data["pdf_url"],
            created_at=data.get("created_at"),
        )
