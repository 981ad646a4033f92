import os
import pytest

from catalog.catalog import Catalog
from catalog.services.google_books_service import VolumeMetadata


class FakeMetadataService:
    """Google Books yerine geçen, ISBN -> VolumeMetadata sözlüğüne dayalı sahte servis."""

    def __init__(self, records=None):
        self.records = dict(records or {})
        self.calls = []

    async def fetch_volume_by_isbn(self, isbn):
        self.calls.append(isbn)
        return self.records.get(isbn)


HARRY_POTTER = VolumeMetadata(
    title="Harry Potter and the Prisoner of Azkaban",
    authors=["J. K. Rowling", "Kazu Kibuishi"],
    categories=["Juvenile Fiction"],
    published_date="2013-08-27",
    language="en",
    isbn10="0545582938",
    isbn13="9780545582933",
)

ELEMENTS_OF_STYLE = VolumeMetadata(
    title="The Elements of Style",
    authors=["William Strunk"],
    categories=["Language Arts & Disciplines"],
    published_date="2004",
    language="en",
)


@pytest.fixture
def metadata():
    return FakeMetadataService({
        "9780545582933": HARRY_POTTER,
        "0545582938": HARRY_POTTER,
        "097522980X": ELEMENTS_OF_STYLE,
    })


@pytest.fixture
def catalog(tmp_path, request, metadata):
    # Her test için benzersiz bir veritabanı dosyası oluştur
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    cat = Catalog(db_file=db_file, metadata_service=metadata)
    yield cat
    cat.close()
    if os.path.exists(db_file):
        os.remove(db_file)
