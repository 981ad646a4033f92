"""ISBN-10 / ISBN-13 doğrulama ve dönüştürme."""

import logging
import re
from typing import Optional, Tuple

from catalog.errors import UnconvertibleIsbn, InvalidChecksum

logger = logging.getLogger(__name__)

ISBN13_PREFIX = "978"


class ISBNValidator:
    """ISBN-10 ve ISBN-13 kontrol basamağı doğrulayıcısı."""

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        s = re.sub(r"[^0-9Xx]", "", raw)
        return s.upper()

    @staticmethod
    def is_valid_isbn10(isbn: str) -> bool:
        if not isbn or len(isbn) != 10:
            return False
        if not isbn[:9].isdigit():
            return False
        check = isbn[9]
        if check == "X":
            check_val = 10
        elif check.isdigit():
            check_val = int(check)
        else:
            return False
        # 10..1 ağırlıklı toplam 11'in katı olmalı
        total = sum((10 - i) * int(ch) for i, ch in enumerate(isbn[:9]))
        return (total + check_val) % 11 == 0

    @staticmethod
    def is_valid_isbn13(isbn: str) -> bool:
        if not isbn or len(isbn) != 13 or not isbn.isdigit():
            return False
        return _isbn13_check_digit(isbn[:12]) == isbn[12]

    @staticmethod
    def is_valid_isbn(isbn: str) -> bool:
        s = ISBNValidator.normalize_isbn(isbn)
        if len(s) == 10:
            return ISBNValidator.is_valid_isbn10(s)
        if len(s) == 13:
            return ISBNValidator.is_valid_isbn13(s)
        return False


def _isbn13_check_digit(first12: str) -> str:
    total = sum(int(ch) * (1 if i % 2 == 0 else 3) for i, ch in enumerate(first12))
    return str((10 - (total % 10)) % 10)


def _isbn10_check_digit(first9: str) -> str:
    total = sum(int(ch) * weight for ch, weight in zip(first9, range(10, 1, -1)))
    check = (11 - (total % 11)) % 11
    return "X" if check == 10 else str(check)


def to_isbn13(isbn10: str) -> str:
    """ISBN-10'u '978' önekli ISBN-13'e dönüştür.

    Yapısal olarak geçerli her ISBN-10 için başarılı olur; aksi halde ValueError.
    """
    isbn10 = ISBNValidator.normalize_isbn(isbn10)
    if len(isbn10) != 10 or not isbn10[:9].isdigit():
        raise ValueError(f"Geçersiz ISBN-10: {isbn10!r}")
    first12 = ISBN13_PREFIX + isbn10[:9]
    return first12 + _isbn13_check_digit(first12)


def to_isbn10(isbn13: str) -> str:
    """ISBN-13'ü ISBN-10'a dönüştür.

    Raises:
        UnconvertibleIsbn: ISBN-13 '978' ile başlamıyorsa.
        InvalidChecksum: Üretilen ISBN-10 doğrulamadan geçemezse.
    """
    isbn13 = ISBNValidator.normalize_isbn(isbn13)
    if not isbn13.startswith(ISBN13_PREFIX):
        raise UnconvertibleIsbn(f"{isbn13} '{ISBN13_PREFIX}' ile başlamıyor")
    if not ISBNValidator.is_valid_isbn13(isbn13):
        raise UnconvertibleIsbn(f"{isbn13} geçerli bir 13 basamaklı ISBN değil")
    digits = isbn13[3:12]
    isbn10 = digits + _isbn10_check_digit(digits)
    if not ISBNValidator.is_valid_isbn10(isbn10):
        raise InvalidChecksum(f"{isbn10} geçerli bir ISBN-10 değil")
    return isbn10


def convert_to_isbn10(isbn13: str) -> Optional[str]:
    """to_isbn10'un kayıt sırasında kullanılan hata toleranslı hali."""
    try:
        return to_isbn10(isbn13)
    except (UnconvertibleIsbn, InvalidChecksum) as e:
        logger.warning(f"isbn13 isbn10'a dönüştürülemedi: {e}")
        return None


def convert_to_isbn13(isbn10: str) -> Optional[str]:
    try:
        return to_isbn13(isbn10)
    except ValueError as e:
        logger.warning(f"isbn10 isbn13'e dönüştürülemedi: {e}")
        return None


def complete_isbns(requested: str, isbn10: Optional[str] = None,
                   isbn13: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
    """Eksik ISBN biçimini istenen ISBN'den tamamla.

    Meta verilerden zaten gelen bir biçimin üzerine yazılmaz. İstenen ISBN
    10 veya 13 karakter değilse değerler olduğu gibi döner.
    """
    if isbn10 and isbn13:
        return isbn10, isbn13
    requested = ISBNValidator.normalize_isbn(requested)
    if len(requested) == 10:
        isbn10 = isbn10 or requested
        isbn13 = isbn13 or convert_to_isbn13(requested)
    elif len(requested) == 13:
        isbn13 = isbn13 or requested
        isbn10 = isbn10 or convert_to_isbn10(requested)
    return isbn10, isbn13
