from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Author:
    author_id: str
    name: str

    def to_dict(self) -> dict:
        return {"author_id": self.author_id, "name": self.name}


@dataclass(frozen=True)
class Category:
    category_id: str
    name: str

    def to_dict(self) -> dict:
        return {"category_id": self.category_id, "name": self.name}


class Volume:
    """Katalogdaki tek bir cilt (kitap baskısı) kaydını temsil eder."""

    def __init__(self, volume_id: str, title: str, isbn10: str | None = None, isbn13: str | None = None,
                 authors: list[Author] | None = None, categories: list[Category] | None = None,
                 published_date: str | None = None, language: str | None = None,
                 created_at: str | None = None) -> None:
        self.volume_id = volume_id
        self.title = title.strip()
        self.isbn10 = isbn10
        self.isbn13 = isbn13
        self.authors = authors or []
        self.categories = categories or []
        self.published_date = published_date
        self.language = language
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        names = ", ".join(a.name for a in self.authors) or "?"
        return f"{self.title} by {names} (ISBN: {self.isbn13 or self.isbn10})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Volume) and other.volume_id == self.volume_id

    def __hash__(self) -> int:
        return hash(self.volume_id)

    def to_dict(self) -> dict:
        return {
            "volume_id": self.volume_id,
            "title": self.title,
            "isbn10": self.isbn10,
            "isbn13": self.isbn13,
            # Yanıtlarda yazar/kategori yalnızca adlarıyla döner
            "authors": [a.name for a in self.authors],
            "categories": [c.name for c in self.categories],
            "published_date": self.published_date,
            "language": self.language,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_row(row: dict, authors: list[Author] | None = None,
                 categories: list[Category] | None = None) -> "Volume":
        return Volume(
            volume_id=row["volume_id"],
            title=row["title"],
            isbn10=row.get("isbn10"),
            isbn13=row.get("isbn13"),
            authors=authors,
            categories=categories,
            published_date=row.get("published_date"),
            language=row.get("language"),
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class User:
    user_id: str
    name: str
    login: str
    password_hash: str
    role: str = "USER"
