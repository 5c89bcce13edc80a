# Shared pytest fixtures
from __future__ import annotations
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Any, Sequence

import pandas as pd
import pytest

from sales_import.db.store_directory import StaticStoreDirectory
from sales_import.logging.init import reset_logging
from sales_import.models.store import StoreDirectoryEntry, StoreStatus


def make_workbook(rows: Sequence[Sequence[Any]], sheet_name: str = "Planilha1") -> bytes:
    """Build .xlsx bytes whose first sheet holds `rows` verbatim (no header row added)."""
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame([list(r) for r in rows]).to_excel(
            writer, sheet_name=sheet_name, header=False, index=False
        )
    return buf.getvalue()


@pytest.fixture()
def workbook():
    return make_workbook


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def store_entries() -> list[StoreDirectoryEntry]:
    return [
        StoreDirectoryEntry(id="st-001", number="1", name="Loja Centro", city="Porto Alegre"),
        StoreDirectoryEntry(id="st-002", number="002", name="Loja Shopping", city="Canoas"),
        StoreDirectoryEntry(
            id="st-042", number="42", name="Loja Praia", city="Torres", status=StoreStatus.INACTIVE
        ),
    ]


@pytest.fixture()
def store_directory(store_entries) -> StaticStoreDirectory:
    return StaticStoreDirectory(store_entries)


@pytest.fixture()
def performance_rows() -> list[list[Any]]:
    """Operator export: title rows, header at index 2, three stores."""
    return [
        ["Relatório mensal de vendas", None, None, None, None],
        ["Emitido em 03/06/2024", None, None, None, None],
        ["Loja", "Faturamento", "Itens Vendidos", "Vendas", "Meta"],
        ["Loja 001", "R$ 10.000,00", 200, 100, "20.000,00"],
        ["2", "5.000,50", 0, 0, None],
        [42, 1234.56, 10, 5, 1000],
    ]


@pytest.fixture()
def product_rows() -> list[list[Any]]:
    return [
        ["Vendas por marca", None, None, None, None],
        ["Loja", "Marca", "Categoria", "Qtde Pares", "Valor Total"],
        ["1", "Nike", "Tênis", 12, "1.200,00"],
        ["1", None, None, 3, "150,00"],
        ["2", "Adidas", "Chinelo", 0, "0"],
        ["99", "Puma", "Tênis", 5, "500,00"],
    ]


@pytest.fixture()
def sample_config_yaml() -> str:
    return """header_scan_limit: 20
imported_by: operator
stores_file: ./config/stores.csv
logs_directory: ./logs
keyword_overrides:
  product:
    units: [pares, qtde, unidades]
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def stores_csv_text() -> str:
    return (
        "id,number,name,city,status\n"
        "st-001,1,Loja Centro,Porto Alegre,active\n"
        "st-002,002,Loja Shopping,Canoas,active\n"
        "st-042,42,Loja Praia,Torres,inactive\n"
    )


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str, stores_csv_text: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    (temp_workdir / "config" / "stores.csv").write_text(stores_csv_text, encoding="utf-8")
    return cfg
