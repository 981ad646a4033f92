import sqlite3
import uuid
import logging
from typing import Callable, Generic, List, Optional, TypeVar

import database
from catalog.dedup import normalize_name
from catalog.errors import DuplicateEntityError
from catalog.volume import Author, Category

logger = logging.getLogger(__name__)

E = TypeVar("E")


class NamedEntityRepository(Generic[E]):
    """Ada göre tekil (authors / categories) tablolar için sorgular.

    Eşsizlik `name_key` sütunundaki UNIQUE kısıtıyla veritabanında zorlanır;
    böylece aynı ad için eşzamanlı oluşturmalar iş parçacıkları ve süreçler
    arasında sıraya girer.
    """

    kind: str = ""
    table: str = ""
    id_column: str = ""

    def __init__(self, factory: Callable[[str, str], E]) -> None:
        self._factory = factory

    def _to_entity(self, row: sqlite3.Row) -> E:
        return self._factory(row[self.id_column], row["name"])

    def find_by_name_ignore_case(self, name: str) -> Optional[E]:
        conn = database.get_db_connection()
        try:
            row = conn.execute(
                f"SELECT {self.id_column}, name FROM {self.table} WHERE name_key = ?",
                (normalize_name(name),),
            ).fetchone()
            return self._to_entity(row) if row else None
        finally:
            conn.close()

    def find_by_id(self, entity_id: str) -> Optional[E]:
        conn = database.get_db_connection()
        try:
            row = conn.execute(
                f"SELECT {self.id_column}, name FROM {self.table} WHERE {self.id_column} = ?",
                (entity_id,),
            ).fetchone()
            return self._to_entity(row) if row else None
        finally:
            conn.close()

    def find_by_name_containing(self, fragment: str) -> List[E]:
        """Adında verilen parçayı (büyük/küçük harf duyarsız) içeren tüm varlıklar.

        Boş parça hiçbir varlıkla eşleşmez.
        """
        key = normalize_name(fragment)
        if not key:
            return []
        conn = database.get_db_connection()
        try:
            rows = conn.execute(
                f"SELECT {self.id_column}, name FROM {self.table} WHERE instr(name_key, ?) > 0 ORDER BY name",
                (key,),
            ).fetchall()
            return [self._to_entity(r) for r in rows]
        finally:
            conn.close()

    def list_all(self) -> List[E]:
        conn = database.get_db_connection()
        try:
            rows = conn.execute(f"SELECT {self.id_column}, name FROM {self.table} ORDER BY name").fetchall()
            return [self._to_entity(r) for r in rows]
        finally:
            conn.close()

    def save(self, name: str) -> E:
        """Yeni bir varlık ekle. Ad zaten kayıtlıysa DuplicateEntityError."""
        entity_id = str(uuid.uuid4())
        conn = database.get_db_connection()
        try:
            conn.execute(
                f"INSERT INTO {self.table} ({self.id_column}, name, name_key) VALUES (?, ?, ?)",
                (entity_id, name, normalize_name(name)),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateEntityError(self.kind, name) from e
        finally:
            conn.close()
        logger.info(f"Yeni {self.kind} oluşturuldu: {name}")
        return self._factory(entity_id, name)


class AuthorRepository(NamedEntityRepository[Author]):
    kind = "author"
    table = "authors"
    id_column = "author_id"

    def __init__(self) -> None:
        super().__init__(Author)


class CategoryRepository(NamedEntityRepository[Category]):
    kind = "category"
    table = "categories"
    id_column = "category_id"

    def __init__(self) -> None:
        super().__init__(Category)
