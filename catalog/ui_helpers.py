import os
import json
from typing import List
from rich.console import Console
from rich.table import Table

from catalog.volume import Volume

# CLI çıktı modunu kontrol eden ortam değişkeni
# İzin verilen değerler: 'plain' (varsayılan), 'json', 'rich'
OUTPUT_MODE_ENV = "CATALOG_CLI_OUTPUT"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

def print_volumes(volumes: List[Volume], empty_message: str = "No volumes in catalog.") -> None:
    """Cilt listesini mevcut çıktı moduna göre yazdır.
    - plain: 'ISBN13 - Title by Author, Author' satırları
    - json: to_dict() dizisi
    - rich: Rich tablosu
    """
    if not volumes:
        print(empty_message)
        return

    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([v.to_dict() for v in volumes], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Volumes", show_lines=True, header_style="bold cyan")
        table.add_column("ISBN-13", style="magenta", no_wrap=True)
        table.add_column("ISBN-10", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Authors", style="white")
        table.add_column("Categories", style="dim")
        for v in volumes:
            table.add_row(
                v.isbn13 or "-",
                v.isbn10 or "-",
                v.title,
                ", ".join(a.name for a in v.authors),
                ", ".join(c.name for c in v.categories),
            )
        _console.print(table)
    else:
        for v in volumes:
            authors = ", ".join(a.name for a in v.authors) or "Unknown"
            print(f"{v.isbn13 or v.isbn10} - {v.title} by {authors}")

def print_volume_details(volume: Volume) -> None:
    if get_output_mode() == "json":
        print(json.dumps(volume.to_dict(), ensure_ascii=False))
        return
    print("Volume Found")
    print(f"Title: {volume.title}")
    print(f"Authors: {', '.join(a.name for a in volume.authors)}")
    print(f"Categories: {', '.join(c.name for c in volume.categories)}")
    print(f"ISBN-10: {volume.isbn10 or '-'}")
    print(f"ISBN-13: {volume.isbn13 or '-'}")
    print(f"Published: {volume.published_date or '-'}")
    print(f"Language: {volume.language or '-'}")
