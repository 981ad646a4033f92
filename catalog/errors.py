"""Katalog alanına ait istisnalar."""


class CatalogError(Exception):
    """Tüm katalog hatalarının temel sınıfı."""
    pass


class UnconvertibleIsbn(CatalogError, ValueError):
    """ISBN-13, ISBN-10'a dönüştürülemez ('978' öneki yok)."""
    pass


class InvalidChecksum(CatalogError, ValueError):
    """Hesaplanan ISBN kendi kontrol basamağı doğrulamasından geçemedi."""
    pass


class DuplicateEntityError(CatalogError):
    """Aynı normalleştirilmiş ada sahip bir yazar/kategori zaten kayıtlı."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind} '{name}' zaten kayıtlı.")
        self.kind = kind
        self.name = name


class VolumeAlreadyRegisteredError(CatalogError):
    pass


class MetadataNotFoundError(CatalogError, LookupError):
    pass


class ExternalServiceError(CatalogError):
    pass


class UserAlreadyExistsError(CatalogError):
    pass


class InvalidCredentialsError(CatalogError):
    pass
