import os
import importlib
import pytest
from fastapi.testclient import TestClient

from conftest import FakeMetadataService, HARRY_POTTER, ELEMENTS_OF_STYLE


@pytest.fixture
def api_module(tmp_path, request):
    # Test başına benzersiz bir veritabanı; api içe aktarılırken kullanılır
    db_file = str(tmp_path / f"api_test_{request.node.name}.db")
    os.environ["LIBRARY_DB_FILE"] = db_file

    import api as api_module
    # api'yi yeniden yükle ki global Catalog() örneği teste özel veritabanını kullansın
    importlib.reload(api_module)
    api_module.catalog.metadata = FakeMetadataService({
        "9780545582933": HARRY_POTTER,
        "097522980X": ELEMENTS_OF_STYLE,
    })
    try:
        yield api_module
    finally:
        os.environ.pop("LIBRARY_DB_FILE", None)


@pytest.fixture
def client(api_module):
    with TestClient(api_module.app) as test_client:
        yield test_client


def _token(client, login="reader", password="password1"):
    client.post("/auth/register", json={"name": "Reader", "login": login, "password": password})
    response = client.post("/auth/login", json={"login": login, "password": password})
    assert response.status_code == 200
    return response.json()["token"]


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["db"] is True


def test_register_and_login(client):
    response = client.post("/auth/register", json={"name": "Priscila", "login": "prisc", "password": "password1"})
    assert response.status_code == 200

    response = client.post("/auth/register", json={"name": "Other", "login": "PRISC", "password": "password2"})
    assert response.status_code == 409

    response = client.post("/auth/login", json={"login": "prisc", "password": "wrong"})
    assert response.status_code == 401

    response = client.post("/auth/login", json={"login": "prisc", "password": "password1"})
    assert response.status_code == 200
    assert response.json()["token"]


def test_register_validation_error(client):
    response = client.post("/auth/register", json={"name": "A", "login": "ab", "password": "x"})
    assert response.status_code == 422


def test_save_volume_requires_token(client):
    response = client.post("/volumes", json={"isbn": "9780545582933"})
    assert response.status_code in (401, 403)

    response = client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth("garbage"))
    assert response.status_code == 401


def test_save_and_get_volume(client):
    token = _token(client)
    response = client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token))
    assert response.status_code == 200
    body = response.json()
    assert body["isbn10"] == "0545582938"
    assert body["isbn13"] == "9780545582933"
    assert body["authors"] == ["J. K. Rowling", "Kazu Kibuishi"]
    assert body["categories"] == ["Juvenile Fiction"]

    response = client.get(f"/volumes/{body['volume_id']}")
    assert response.status_code == 200
    assert response.json()["title"] == body["title"]

    response = client.get("/volumes/isbn/0545582938")
    assert response.status_code == 200
    assert response.json()["volume_id"] == body["volume_id"]

    response = client.get("/volumes")
    assert [v["volume_id"] for v in response.json()] == [body["volume_id"]]


def test_save_volume_errors(client):
    token = _token(client)
    assert client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token)).status_code == 200
    assert client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token)).status_code == 409
    assert client.post("/volumes", json={"isbn": "1234567890123"}, headers=_auth(token)).status_code == 400
    assert client.post("/volumes", json={"isbn": "9780134686097"}, headers=_auth(token)).status_code == 404


def test_save_volume_metadata_service_down(client, api_module):
    from catalog.errors import ExternalServiceError

    class DownService:
        async def fetch_volume_by_isbn(self, isbn):
            raise ExternalServiceError("Google Books'a ulaşılamıyor")

    api_module.catalog.metadata = DownService()
    token = _token(client)
    response = client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token))
    assert response.status_code == 502


def test_get_missing_volume(client):
    assert client.get("/volumes/does-not-exist").status_code == 404
    assert client.get("/volumes/isbn/9780545582933").status_code == 404


def test_search(client):
    token = _token(client)
    client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token))
    client.post("/volumes", json={"isbn": "097522980X"}, headers=_auth(token))

    response = client.get("/volumes/search", params={"title": "azkaban"})
    assert [v["title"] for v in response.json()] == ["Harry Potter and the Prisoner of Azkaban"]

    response = client.get("/volumes/search", params={"author": "STRUNK"})
    assert [v["isbn13"] for v in response.json()] == ["9780975229804"]

    response = client.get("/volumes/search", params={"category": "fiction"})
    assert len(response.json()) == 1

    assert client.get("/volumes/search").status_code == 400
    assert client.get("/volumes/search", params={"title": "a", "author": "b"}).status_code == 400


def test_author_and_category_volumes(client, api_module):
    token = _token(client)
    body = client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token)).json()

    author = api_module.catalog.authors.find_by_name_ignore_case("j. k. rowling")
    response = client.get(f"/authors/{author.author_id}/volumes")
    assert [v["volume_id"] for v in response.json()] == [body["volume_id"]]

    category = api_module.catalog.categories.find_by_name_ignore_case("Juvenile Fiction")
    response = client.get(f"/categories/{category.category_id}/volumes")
    assert response.status_code == 200
    assert len(response.json()) == 1

    assert client.get("/authors/unknown/volumes").status_code == 404
    assert client.get("/categories/unknown/volumes").status_code == 404


def test_delete_requires_admin(client, api_module):
    token = _token(client)
    body = client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token)).json()

    response = client.delete(f"/volumes/{body['volume_id']}", headers=_auth(token))
    assert response.status_code == 403

    api_module.auth_service.register("Admin", "admin", "admin-pass", role="ADMIN")
    admin_token = _token(client, login="admin", password="admin-pass")
    response = client.delete(f"/volumes/{body['volume_id']}", headers=_auth(admin_token))
    assert response.status_code == 200
    response = client.delete(f"/volumes/{body['volume_id']}", headers=_auth(admin_token))
    assert response.status_code == 404


def test_stats(client):
    token = _token(client)
    client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token))
    response = client.get("/stats")
    assert response.json() == {"total_volumes": 1, "total_authors": 2, "total_categories": 1}


def test_register_blank_name_is_validation_error(client):
    response = client.post("/auth/register", json={"name": "   ", "login": "reader", "password": "password1"})
    assert response.status_code == 422
    response = client.post("/auth/register", json={"name": "Reader", "login": "  ab  ", "password": "password1"})
    assert response.status_code == 422


def test_search_blank_filter_is_rejected(client):
    token = _token(client)
    client.post("/volumes", json={"isbn": "9780545582933"}, headers=_auth(token))

    assert client.get("/volumes/search", params={"author": " "}).status_code == 400
    # Boş değer yok sayılır, geriye tek geçerli filtre kalır
    response = client.get("/volumes/search", params={"author": " ", "title": " azkaban "})
    assert response.status_code == 200
    assert len(response.json()) == 1
