"""Kullanıcı kaydı, giriş ve JWT belirteçleri."""

import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from config import settings
from database import get_db_connection
from catalog.errors import InvalidCredentialsError, UserAlreadyExistsError
from catalog.volume import User

logger = logging.getLogger(__name__)

ROLES = ("USER", "ADMIN")


def _normalize_login(login: str) -> str:
    return login.strip().lower()


class AuthService:
    """Kullanıcıları `users` tablosunda tutar ve belirteç üretir/doğrular."""

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None,
                 expiration_minutes: Optional[int] = None) -> None:
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expiration_minutes = expiration_minutes or settings.jwt_expiration_minutes

    def find_by_login(self, login: str) -> Optional[User]:
        conn = get_db_connection()
        try:
            row = conn.execute(
                "SELECT user_id, name, login, password_hash, role FROM users WHERE login = ?",
                (_normalize_login(login),),
            ).fetchone()
            return User(**dict(row)) if row else None
        finally:
            conn.close()

    def register(self, name: str, login: str, password: str, role: str = "USER") -> User:
        """Yeni kullanıcı kaydet. Giriş adı küçük harfe çevrilir; görünen ad olduğu gibi saklanır."""
        if role not in ROLES:
            raise ValueError(f"Geçersiz rol: {role}")
        if not name.strip() or not login.strip() or not password:
            raise ValueError("Ad, giriş adı ve parola zorunludur.")
        login = _normalize_login(login)
        if self.find_by_login(login):
            raise UserAlreadyExistsError(f"'{login}' giriş adı zaten kullanılıyor.")

        user = User(
            user_id=str(uuid.uuid4()),
            name=name.strip(),
            login=login,
            password_hash=generate_password_hash(password),
            role=role,
        )
        conn = get_db_connection()
        try:
            conn.execute(
                "INSERT INTO users (user_id, name, login, password_hash, role) VALUES (?, ?, ?, ?, ?)",
                (user.user_id, user.name, user.login, user.password_hash, user.role),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise UserAlreadyExistsError(f"'{login}' giriş adı zaten kullanılıyor.") from e
        finally:
            conn.close()
        logger.info(f"Kullanıcı kaydedildi: {login}")
        return user

    def authenticate(self, login: str, password: str) -> User:
        user = self.find_by_login(login)
        if user is None or not check_password_hash(user.password_hash, password):
            logger.warning(f"Başarısız giriş denemesi: {login}")
            raise InvalidCredentialsError("Giriş adı veya parola hatalı.")
        return user

    def issue_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.login,
            "role": user.role,
            "iat": now,
            "exp": now + timedelta(minutes=self.expiration_minutes),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> User:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.PyJWTError as e:
            raise InvalidCredentialsError("Belirteç geçersiz veya süresi dolmuş.") from e
        user = self.find_by_login(payload.get("sub", ""))
        if user is None:
            raise InvalidCredentialsError("Belirteç sahibi bulunamadı.")
        return user
