import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # API Ayarları
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Veritabanı Ayarları
    database_file: Optional[str] = os.getenv("LIBRARY_DB_FILE")
    database_timeout: float = float(os.getenv("DATABASE_TIMEOUT", "10"))

    # Google Books API Ayarları
    google_books_api_key: Optional[str] = os.getenv("GOOGLE_BOOKS_API_KEY")
    google_books_timeout: float = float(os.getenv("GOOGLE_BOOKS_TIMEOUT", "10"))
    enable_google_books: bool = os.getenv("ENABLE_GOOGLE_BOOKS", "True").lower() in ("true", "1", "yes")

    # Güvenlik Ayarları
    secret_key: str = os.getenv("SECRET_KEY", "your-secret-key-change-this-in-production")
    jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", secret_key)
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    jwt_expiration_minutes: int = int(os.getenv("JWT_EXPIRATION_MINUTES", "120"))

    # Katalog Ayarları
    # Eşzamanlı kayıtlarda yazar/kategori oluşturma çakışması için yeniden deneme sayısı
    entity_create_retries: int = int(os.getenv("ENTITY_CREATE_RETRIES", "3"))

    # Uygulama Ayarları
    app_name: str = os.getenv("APP_NAME", "Katalog Yönetim Sistemi")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
