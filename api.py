import os
import logging
from datetime import datetime, timezone
from typing import Annotated, List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Depends, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field, StringConstraints

from catalog.auth import AuthService
from catalog.catalog import Catalog
from catalog.errors import (
    ExternalServiceError,
    InvalidCredentialsError,
    MetadataNotFoundError,
    UserAlreadyExistsError,
    VolumeAlreadyRegisteredError,
)
from catalog.services.http_client import get_http_client, cleanup_http_client
from catalog.volume import User, Volume
from config import settings
from database import get_db_connection

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

catalog = Catalog(db_file=os.environ.get("LIBRARY_DB_FILE"))
auth_service = AuthService()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Başlangıçta paylaşılan HTTP istemcisini başlat
    await get_http_client()
    try:
        yield
    finally:
        await cleanup_http_client()

app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Güvenlik ---
bearer_scheme = HTTPBearer()

def get_current_user(credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> User:
    """Bearer belirtecini doğrulamak için bağımlılık."""
    try:
        return auth_service.verify_token(credentials.credentials)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))

def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "ADMIN":
        raise HTTPException(status_code=403, detail="Bu işlem için yönetici yetkisi gerekir.")
    return user

# --- Modeller ---
class VolumeModel(BaseModel):
    volume_id: str
    title: str
    isbn10: str | None = None
    isbn13: str | None = None
    authors: List[str] = []
    categories: List[str] = []
    published_date: str | None = None
    language: str | None = None
    created_at: str | None = None

class VolumeCreateModel(BaseModel):
    isbn: str = Field(..., min_length=10, description="ISBN-10 veya ISBN-13")

class RegisterModel(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    login: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3)]
    password: str = Field(..., min_length=6)

class LoginModel(BaseModel):
    login: str
    password: str

class TokenModel(BaseModel):
    token: str

class StatsModel(BaseModel):
    total_volumes: int
    total_authors: int
    total_categories: int

# --- Yardımcı Fonksiyonlar ---
def _to_model(volume: Volume) -> VolumeModel:
    return VolumeModel(**volume.to_dict())

# --- Sağlık Kontrolü ---
@app.get("/health")
async def health():
    """Hafif sağlık uç noktası; hızlı bir veritabanı bağlantı denemesi yapar."""
    db_ok = True
    try:
        conn = get_db_connection()
        conn.execute("SELECT 1")
        conn.close()
    except Exception:
        logger.exception("Sağlık kontrolünde veritabanına ulaşılamadı")
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "db": db_ok,
        "services": {"google_books": catalog.metadata is not None},
    }

@app.get("/stats", response_model=StatsModel)
def get_catalog_stats():
    """Katalog hakkında temel istatistikleri al."""
    return StatsModel(**catalog.get_statistics())

# --- Kimlik Doğrulama ---
@app.post("/auth/register")
def register(payload: RegisterModel):
    """Yeni kullanıcı kaydı."""
    try:
        auth_service.register(payload.name, payload.login, payload.password)
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Kullanıcı kaydedildi."}

@app.post("/auth/login", response_model=TokenModel)
def login(payload: LoginModel):
    """Kimlik bilgilerini doğrula ve belirteç döndür."""
    try:
        user = auth_service.authenticate(payload.login, payload.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return TokenModel(token=auth_service.issue_token(user))

# --- Cilt Uç Noktaları ---
@app.post("/volumes", response_model=VolumeModel, dependencies=[Depends(get_current_user)])
async def save_volume(payload: VolumeCreateModel):
    """ISBN ile yeni bir cilt kaydet; meta veriler Google Books'tan alınır."""
    try:
        volume = await catalog.save_volume(payload.isbn)
    except VolumeAlreadyRegisteredError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MetadataNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ExternalServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_model(volume)

@app.get("/volumes", response_model=List[VolumeModel])
def list_volumes():
    """Tüm ciltleri listele."""
    return [_to_model(v) for v in catalog.list_volumes()]

@app.get("/volumes/search", response_model=List[VolumeModel])
def search_volumes(
    title: Optional[str] = Query(None, description="Başlıkta geçen metin"),
    author: Optional[str] = Query(None, description="Yazar adında geçen metin"),
    category: Optional[str] = Query(None, description="Kategori adında geçen metin"),
):
    """Başlık, yazar veya kategoriye göre arama. Tam olarak bir filtre verilmelidir."""
    # Yalnızca boşluktan oluşan değerler filtre sayılmaz
    filters = {k: v.strip() for k, v in {"title": title, "author": author, "category": category}.items()
               if v and v.strip()}
    if len(filters) != 1:
        raise HTTPException(status_code=400, detail="title, author veya category parametrelerinden birini sağlayın.")
    field_name, value = next(iter(filters.items()))
    if field_name == "title":
        volumes = catalog.find_by_title(value)
    elif field_name == "author":
        volumes = catalog.find_by_author(value)
    else:
        volumes = catalog.find_by_category(value)
    return [_to_model(v) for v in volumes]

@app.get("/volumes/isbn/{isbn}", response_model=VolumeModel)
def get_volume_by_isbn(isbn: str):
    """ISBN-10 veya ISBN-13 ile tek bir cilt al."""
    volume = catalog.find_by_isbn(isbn)
    if not volume:
        raise HTTPException(status_code=404, detail="Cilt bulunamadı.")
    return _to_model(volume)

@app.get("/volumes/{volume_id}", response_model=VolumeModel)
def get_volume(volume_id: str):
    volume = catalog.find_by_id(volume_id)
    if not volume:
        raise HTTPException(status_code=404, detail="Cilt bulunamadı.")
    return _to_model(volume)

@app.delete("/volumes/{volume_id}", dependencies=[Depends(require_admin)])
def delete_volume(volume_id: str):
    """Cildi sil (yalnızca yönetici). Yazar ve kategoriler silinmez."""
    if not catalog.remove_volume(volume_id):
        raise HTTPException(status_code=404, detail="Cilt bulunamadı.")
    return {"message": "Cilt kaldırıldı."}

@app.get("/authors/{author_id}/volumes", response_model=List[VolumeModel])
def get_author_volumes(author_id: str):
    if not catalog.authors.find_by_id(author_id):
        raise HTTPException(status_code=404, detail="Yazar bulunamadı.")
    return [_to_model(v) for v in catalog.volumes_of_author(author_id)]

@app.get("/categories/{category_id}/volumes", response_model=List[VolumeModel])
def get_category_volumes(category_id: str):
    if not catalog.categories.find_by_id(category_id):
        raise HTTPException(status_code=404, detail="Kategori bulunamadı.")
    return [_to_model(v) for v in catalog.volumes_of_category(category_id)]

@app.get("/")
def read_root():
    return {"name": settings.app_name, "version": settings.app_version}
