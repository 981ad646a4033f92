import logging
import sqlite3
import uuid
from typing import Any, Dict, Iterable, List, Optional

import database
from config import settings
from database import get_db_connection, initialize_database
from catalog.dedup import resolve_entities
from catalog.errors import (
    ExternalServiceError,
    MetadataNotFoundError,
    VolumeAlreadyRegisteredError,
)
from catalog.isbn import ISBNValidator, complete_isbns
from catalog.repositories import AuthorRepository, CategoryRepository
from catalog.services.google_books_service import GoogleBooksService
from catalog.volume import Author, Category, Volume

logger = logging.getLogger(__name__)

_VOLUME_COLUMNS = "v.volume_id, v.title, v.isbn10, v.isbn13, v.published_date, v.language, v.created_at"


class Catalog:
    """Cilt koleksiyonunu ve veri kalıcılığını yönetir.

    İşbirlikçiler (meta veri servisi, yazar/kategori depoları) yapıcıdan
    verilir; verilmezse varsayılanları oluşturulur.
    """

    def __init__(self, db_file: Optional[str] = None,
                 metadata_service: Optional[GoogleBooksService] = None,
                 authors: Optional[AuthorRepository] = None,
                 categories: Optional[CategoryRepository] = None) -> None:
        # database.py'deki modül düzeyindeki yardımcılar bu dosyayı kullanır
        if db_file:
            database.DATABASE_FILE = db_file

        # Şemanın güncel olduğundan emin olmak için her başlangıçta veritabanını başlat
        initialize_database()

        if metadata_service is None and settings.enable_google_books:
            metadata_service = GoogleBooksService()
        self.metadata = metadata_service
        self.authors = authors or AuthorRepository()
        self.categories = categories or CategoryRepository()

    # ------------------------- Çekirdek işlemler ------------------------- #
    async def save_volume(self, isbn: str) -> Volume:
        """ISBN'ye göre meta verileri al, yazar/kategorileri çözümle ve cildi kaydet."""
        isbn = ISBNValidator.normalize_isbn(isbn)
        if not isbn:
            raise ValueError("ISBN boş olamaz.")
        if not ISBNValidator.is_valid_isbn(isbn):
            raise ValueError("Geçersiz ISBN formatı.")
        if self.find_by_isbn(isbn):
            raise VolumeAlreadyRegisteredError(f"ISBN {isbn} zaten katalogda kayıtlı.")

        if self.metadata is None:
            raise ExternalServiceError("Meta veri servisi devre dışı.")
        metadata = await self.metadata.fetch_volume_by_isbn(isbn)
        if not metadata:
            raise MetadataNotFoundError(f"ISBN {isbn} için kitap bulunamadı.")

        isbn10, isbn13 = complete_isbns(isbn, metadata.isbn10, metadata.isbn13)
        for other in (isbn10, isbn13):
            if other and other != isbn and self.find_by_isbn(other):
                raise VolumeAlreadyRegisteredError(f"ISBN {other} zaten katalogda kayıtlı.")

        retries = settings.entity_create_retries
        authors = resolve_entities(metadata.authors, self.authors.find_by_name_ignore_case,
                                   self.authors.save, retries=retries)
        categories = resolve_entities(metadata.categories, self.categories.find_by_name_ignore_case,
                                      self.categories.save, retries=retries)

        volume = Volume(
            volume_id=str(uuid.uuid4()),
            title=metadata.title,
            isbn10=isbn10,
            isbn13=isbn13,
            authors=authors,
            categories=categories,
            published_date=metadata.published_date,
            language=metadata.language,
        )
        self._insert_volume(volume)
        logger.info(f"Cilt kaydedildi: {volume.title} ({volume.isbn13 or volume.isbn10})")
        return volume

    def _insert_volume(self, volume: Volume) -> None:
        conn = get_db_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO volumes (volume_id, title, isbn10, isbn13, published_date, language)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (volume.volume_id, volume.title, volume.isbn10, volume.isbn13,
                  volume.published_date, volume.language))
            cursor.executemany(
                "INSERT INTO volume_authors (volume_id, author_id, position) VALUES (?, ?, ?)",
                [(volume.volume_id, a.author_id, i) for i, a in enumerate(volume.authors)],
            )
            cursor.executemany(
                "INSERT INTO volume_categories (volume_id, category_id, position) VALUES (?, ?, ?)",
                [(volume.volume_id, c.category_id, i) for i, c in enumerate(volume.categories)],
            )
            conn.commit()
            row = cursor.execute("SELECT created_at FROM volumes WHERE volume_id = ?",
                                 (volume.volume_id,)).fetchone()
            if row:
                volume.created_at = row[0]
        except sqlite3.IntegrityError as e:
            # Aynı ISBN ile eşzamanlı bir kayıt önce tamamlandı
            conn.rollback()
            raise VolumeAlreadyRegisteredError(
                f"ISBN {volume.isbn13 or volume.isbn10} zaten katalogda kayıtlı.") from e
        finally:
            conn.close()

    def remove_volume(self, volume_id: str) -> bool:
        """Cildi sil. Yazar ve kategoriler katalogda kalır."""
        conn = get_db_connection()
        try:
            cursor = conn.execute("DELETE FROM volumes WHERE volume_id = ?", (volume_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------- Sorgular ------------------------- #
    def _load_volumes(self, where: str = "", params: Iterable[Any] = ()) -> List[Volume]:
        conn = get_db_connection()
        try:
            rows = conn.execute(
                f"SELECT {_VOLUME_COLUMNS} FROM volumes v {where} ORDER BY v.title, v.volume_id",
                tuple(params),
            ).fetchall()
            if not rows:
                return []
            ids = [r["volume_id"] for r in rows]
            marks = ", ".join("?" for _ in ids)

            authors: Dict[str, List[Author]] = {vid: [] for vid in ids}
            for r in conn.execute(f"""
                SELECT va.volume_id, a.author_id, a.name FROM volume_authors va
                JOIN authors a ON a.author_id = va.author_id
                WHERE va.volume_id IN ({marks}) ORDER BY va.position
            """, ids):
                authors[r["volume_id"]].append(Author(r["author_id"], r["name"]))

            categories: Dict[str, List[Category]] = {vid: [] for vid in ids}
            for r in conn.execute(f"""
                SELECT vc.volume_id, c.category_id, c.name FROM volume_categories vc
                JOIN categories c ON c.category_id = vc.category_id
                WHERE vc.volume_id IN ({marks}) ORDER BY vc.position
            """, ids):
                categories[r["volume_id"]].append(Category(r["category_id"], r["name"]))

            return [
                Volume.from_row(dict(r), authors[r["volume_id"]], categories[r["volume_id"]])
                for r in rows
            ]
        finally:
            conn.close()

    def list_volumes(self) -> List[Volume]:
        """Veritabanındaki tüm ciltleri listele (her çağrıda taze)."""
        return self._load_volumes()

    def find_by_id(self, volume_id: str) -> Optional[Volume]:
        found = self._load_volumes("WHERE v.volume_id = ?", (volume_id,))
        return found[0] if found else None

    def find_by_isbn(self, isbn: str) -> Optional[Volume]:
        """10 karakterlik ISBN isbn10 sütununda, 13 karakterlik isbn13 sütununda aranır."""
        isbn = ISBNValidator.normalize_isbn(isbn)
        if len(isbn) == 10:
            found = self._load_volumes("WHERE v.isbn10 = ?", (isbn,))
        elif len(isbn) == 13:
            found = self._load_volumes("WHERE v.isbn13 = ?", (isbn,))
        else:
            return None
        return found[0] if found else None

    def find_by_title(self, fragment: str) -> List[Volume]:
        """Başlığında parçayı içeren ciltler (büyük/küçük harf duyarsız)."""
        fragment = fragment.strip()
        if not fragment:
            return []
        return self._load_volumes("WHERE instr(casefold(v.title), ?) > 0", (fragment.casefold(),))

    def volumes_of_author(self, author_id: str) -> List[Volume]:
        return self._load_volumes(
            "WHERE v.volume_id IN (SELECT volume_id FROM volume_authors WHERE author_id = ?)",
            (author_id,),
        )

    def volumes_of_category(self, category_id: str) -> List[Volume]:
        return self._load_volumes(
            "WHERE v.volume_id IN (SELECT volume_id FROM volume_categories WHERE category_id = ?)",
            (category_id,),
        )

    def find_by_author(self, fragment: str) -> List[Volume]:
        """Adı parçayı içeren tüm yazarların ciltleri, tekrarsız."""
        author_ids = [a.author_id for a in self.authors.find_by_name_containing(fragment)]
        if not author_ids:
            return []
        marks = ", ".join("?" for _ in author_ids)
        return self._load_volumes(
            f"WHERE v.volume_id IN (SELECT volume_id FROM volume_authors WHERE author_id IN ({marks}))",
            author_ids,
        )

    def find_by_category(self, fragment: str) -> List[Volume]:
        category_ids = [c.category_id for c in self.categories.find_by_name_containing(fragment)]
        if not category_ids:
            return []
        marks = ", ".join("?" for _ in category_ids)
        return self._load_volumes(
            f"WHERE v.volume_id IN (SELECT volume_id FROM volume_categories WHERE category_id IN ({marks}))",
            category_ids,
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Katalog istatistiklerini al."""
        conn = get_db_connection()
        try:
            cursor = conn.cursor()
            total_volumes = cursor.execute("SELECT COUNT(*) FROM volumes").fetchone()[0]
            total_authors = cursor.execute("SELECT COUNT(*) FROM authors").fetchone()[0]
            total_categories = cursor.execute("SELECT COUNT(*) FROM categories").fetchone()[0]
            return {
                "total_volumes": total_volumes,
                "total_authors": total_authors,
                "total_categories": total_categories,
            }
        finally:
            conn.close()

    def close(self) -> None:
        """Katalog işlem başına bağlantı açar; kapatılacak kalıcı kaynak yoktur."""
        return None
