"""Yazar ve kategori adlarını tekil katalog varlıklarına çözümler.

Ad eşleştirmesi büyük/küçük harf duyarsızdır: boşluklar sadeleştirilir ve
`str.casefold()` uygulanır. Yeni bir varlık, adın ilk görüldüğü yazımla
oluşturulur; aynı çağrıdaki "Rowling" ve "ROWLING" için "Rowling" (girdide
önce gelen) saklanır. Kayıtlı bir varlığın yazımı sonradan değişmez.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from catalog.errors import DuplicateEntityError

logger = logging.getLogger(__name__)

E = TypeVar("E")


def normalize_name(name: str) -> str:
    """Karşılaştırma anahtarı: sadeleştirilmiş boşluk + casefold."""
    return " ".join(name.split()).casefold()


def resolve_entities(
    names: Iterable[str],
    find_by_name: Callable[[str], Optional[E]],
    create: Callable[[str], E],
    *,
    retries: int = 3,
) -> List[E]:
    """Her farklı ad için tam olarak bir varlık döndür.

    Args:
        names: Ham adlar. Sıra korunur; boş adlar atlanır.
        find_by_name: Büyük/küçük harf duyarsız arama, yoksa None.
        create: Yeni varlığı kaydeder. Eşzamanlı bir kayıt aynı adı önce
            eklediyse DuplicateEntityError fırlatır.
        retries: Oluşturma çakışmasında yeniden arama denemesi sayısı.

    Returns:
        İlk görülme sırasına göre varlık listesi.
    """
    resolved: Dict[str, E] = {}
    for raw in names:
        if raw is None:
            continue
        name = " ".join(raw.split())
        if not name:
            continue
        key = normalize_name(name)
        if key in resolved:
            continue
        resolved[key] = _find_or_create(name, find_by_name, create, retries)
    return list(resolved.values())


def _find_or_create(name: str, find_by_name: Callable[[str], Optional[E]],
                    create: Callable[[str], E], retries: int) -> E:
    last_error = DuplicateEntityError("entity", name)
    for attempt in range(max(1, retries)):
        existing = find_by_name(name)
        if existing is not None:
            return existing
        try:
            return create(name)
        except DuplicateEntityError as e:
            # Başka bir kayıt aynı adı araya girip ekledi; yeniden oku
            logger.warning(f"Oluşturma çakışması ({attempt + 1}/{retries}): {e}")
            last_error = e
    existing = find_by_name(name)
    if existing is not None:
        return existing
    raise last_error
