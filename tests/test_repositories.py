import threading

import pytest

import database
from catalog.dedup import resolve_entities
from catalog.errors import DuplicateEntityError
from catalog.repositories import AuthorRepository, CategoryRepository


def test_save_and_find_ignore_case(catalog):
    repo = AuthorRepository()
    saved = repo.save("J. K. Rowling")
    assert repo.find_by_name_ignore_case("j. k. ROWLING") == saved
    assert repo.find_by_id(saved.author_id) == saved
    assert repo.find_by_name_ignore_case("Tolkien") is None


def test_save_duplicate_name_raises(catalog):
    repo = CategoryRepository()
    repo.save("Juvenile Fiction")
    with pytest.raises(DuplicateEntityError):
        repo.save("JUVENILE FICTION")
    assert len(repo.list_all()) == 1


def test_find_by_name_containing(catalog):
    repo = AuthorRepository()
    repo.save("J. K. Rowling")
    repo.save("Kazu Kibuishi")
    repo.save("William Strunk")
    assert [a.name for a in repo.find_by_name_containing("ROW")] == ["J. K. Rowling"]
    assert [a.name for a in repo.find_by_name_containing("k")] == ["J. K. Rowling", "Kazu Kibuishi", "William Strunk"]
    assert repo.find_by_name_containing("zzz") == []
    assert repo.find_by_name_containing("   ") == []


class _RacingAuthorRepository(AuthorRepository):
    """İlk aramadan sonra iki iş parçacığını aynı noktada buluşturur, böylece ikisi de adı yok sanar."""

    def __init__(self, barrier):
        super().__init__()
        self._barrier = barrier
        self._local = threading.local()

    def find_by_name_ignore_case(self, name):
        result = super().find_by_name_ignore_case(name)
        if not getattr(self._local, "waited", False):
            self._local.waited = True
            self._barrier.wait(timeout=10)
        return result


def test_concurrent_resolve_creates_single_entity(catalog):
    barrier = threading.Barrier(2)
    repo = _RacingAuthorRepository(barrier)
    results = [None, None]
    errors = []

    def worker(index, name):
        try:
            results[index] = resolve_entities([name], repo.find_by_name_ignore_case, repo.save)
        except Exception as e:  # pragma: no cover - test hatası olarak raporlanır
            errors.append(e)

    threads = [
        threading.Thread(target=worker, args=(0, "Rowling")),
        threading.Thread(target=worker, args=(1, "ROWLING")),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert results[0][0].author_id == results[1][0].author_id

    conn = database.get_db_connection()
    try:
        count = conn.execute("SELECT COUNT(*) FROM authors WHERE name_key = 'rowling'").fetchone()[0]
    finally:
        conn.close()
    assert count == 1
