import sqlite3
import os
import logging
import tempfile
from dotenv import load_dotenv

# .env'den ortam değişkenlerinin okunmadan önce yüklendiğinden emin olun.
load_dotenv()

from config import settings

logger = logging.getLogger(__name__)

# Varsayılan veritabanı dosyası.
# Öncelik:
# 1) LIBRARY_DB_FILE (açık geçersiz kılma)
# 2) İşlem başına geçici dosya
DATABASE_FILE = (
    settings.database_file
    or os.path.join(tempfile.gettempdir(), f"catalog_{os.getpid()}.db")
)


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def get_db_connection() -> sqlite3.Connection:
    """SQLite veritabanına yeni bir bağlantı kurar.

    Her iş parçacığı kendi bağlantısını açar; eşzamanlı yazıcılar için
    `settings.database_timeout` kadar kilit beklenir.
    """
    conn = sqlite3.connect(DATABASE_FILE, timeout=settings.database_timeout)
    conn.row_factory = sqlite3.Row
    # SQLite lower() yalnızca ASCII harfleri küçültür; Unicode için casefold kullanılır
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def create_tables() -> None:
    """Veritabanında mevcut değilse gerekli tabloları oluşturur."""
    conn = get_db_connection()
    try:
        cursor = conn.cursor()
        # WAL, okuyucuların yazıcıları engellememesini sağlar
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS volumes (
                volume_id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                isbn10 TEXT UNIQUE,
                isbn13 TEXT UNIQUE,
                published_date TEXT,
                language TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # name_key: boşlukları sadeleştirilmiş, casefold edilmiş ad. Eşsizlik burada zorlanır.
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS authors (
                author_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                name_key TEXT NOT NULL UNIQUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS categories (
                category_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                name_key TEXT NOT NULL UNIQUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Cilt, yazar/kategori referanslarının sahibidir
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS volume_authors (
                volume_id TEXT NOT NULL,
                author_id TEXT NOT NULL,
                position INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (volume_id, author_id),
                FOREIGN KEY (volume_id) REFERENCES volumes(volume_id) ON DELETE CASCADE,
                FOREIGN KEY (author_id) REFERENCES authors(author_id)
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS volume_categories (
                volume_id TEXT NOT NULL,
                category_id TEXT NOT NULL,
                position INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (volume_id, category_id),
                FOREIGN KEY (volume_id) REFERENCES volumes(volume_id) ON DELETE CASCADE,
                FOREIGN KEY (category_id) REFERENCES categories(category_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                login TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'USER',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_volumes_title ON volumes(title)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_volume_authors_author_id ON volume_authors(author_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_volume_categories_category_id ON volume_categories(category_id)")

        conn.commit()
    finally:
        conn.close()


def initialize_database() -> None:
    """Veritabanını başlatır, gerekirse tabloları oluşturur."""
    create_tables()
    logger.debug(f"Veritabanı hazır: {DATABASE_FILE}")
