import asyncio
import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console

import database
from catalog.catalog import Catalog
from catalog.errors import (
    ExternalServiceError,
    MetadataNotFoundError,
    VolumeAlreadyRegisteredError,
)
from catalog.isbn import ISBNValidator, convert_to_isbn10, convert_to_isbn13
from catalog.ui_helpers import set_output_mode, print_volumes, print_volume_details
from config import settings

console = Console()


class CatalogManager:
    """Süreç başına tek Catalog örneği; veritabanı dosyası değişirse yeniden oluşturulur."""
    _instance: Optional[Catalog] = None
    _db_file_snapshot: Optional[str] = None

    @classmethod
    def get_instance(cls) -> Catalog:
        current_db = database.DATABASE_FILE
        if cls._instance is None or cls._db_file_snapshot != current_db:
            cls._instance = Catalog()
            cls._db_file_snapshot = current_db
        return cls._instance


# --- Typer CLI Uygulaması ---
app = typer.Typer(help="Katalog CLI")

@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Çıktı formatı: plain | json | rich (varsayılan: plain)",
    )
):
    """CLI için genel seçenekler (ör. çıktı modu)."""
    if output:
        set_output_mode(output)

@app.command("add")
def cli_add(isbn: str):
    """Google Books üzerinden ISBN ile bir cilt kaydet."""
    catalog = CatalogManager.get_instance()
    try:
        volume = asyncio.run(catalog.save_volume(isbn))
        authors = ", ".join(a.name for a in volume.authors) or "Unknown"
        print(f"Successfully added: {volume.title} by {authors}")
    except VolumeAlreadyRegisteredError as e:
        print(f"Already registered: {e}")
    except MetadataNotFoundError as e:
        print(f"Could not find volume: {e}")
    except ExternalServiceError as e:
        print(f"Metadata service error: {e}")
    except ValueError as e:
        print(f"Error: {e}")

@app.command("list")
def cli_list():
    """Tüm ciltleri listele."""
    print_volumes(CatalogManager.get_instance().list_volumes())

@app.command("search")
def cli_search(
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Başlıkta geçen metin"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Yazar adında geçen metin"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Kategori adında geçen metin"),
):
    """Başlık, yazar veya kategoriye göre ara."""
    catalog = CatalogManager.get_instance()
    title, author, category = (v.strip() if v else None for v in (title, author, category))
    if title:
        volumes = catalog.find_by_title(title)
    elif author:
        volumes = catalog.find_by_author(author)
    elif category:
        volumes = catalog.find_by_category(category)
    else:
        print("Provide --title, --author or --category.")
        raise typer.Exit(code=1)
    print_volumes(volumes, empty_message="No matching volumes.")

@app.command("show")
def cli_show(isbn: str):
    """ISBN ile bir cilt bul ve detayları göster."""
    volume = CatalogManager.get_instance().find_by_isbn(isbn)
    if volume:
        print_volume_details(volume)
    else:
        print(f"Volume with ISBN {isbn} not found.")

@app.command("convert")
def cli_convert(isbn: str):
    """ISBN-10 ile ISBN-13 arasında dönüştür."""
    clean = ISBNValidator.normalize_isbn(isbn)
    if not ISBNValidator.is_valid_isbn(clean):
        print(f"Invalid ISBN: {isbn}")
        raise typer.Exit(code=1)
    if len(clean) == 10:
        print(f"ISBN-13: {convert_to_isbn13(clean)}")
    else:
        converted = convert_to_isbn10(clean)
        print(f"ISBN-10: {converted}" if converted else f"{clean} has no ISBN-10 form.")

@app.command("serve")
def serve(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False):
    """API için Uvicorn sunucusunu başlatır."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    console.print(f"[green]Starting API on http://{host}:{port}/[/]")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args)
    except FileNotFoundError:
        console.print("[bold red]Hata:[/] `uvicorn` bulunamadı. Lütfen ortamınızda yüklü olduğundan emin olun.")


if __name__ == "__main__":
    app()
