import csv
import io
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pandas as pd
import pytest

from partilio.core.errors import InvalidInputError
from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.utils.csv_io import (
    BOM,
    MAX_IMPORT_ROWS,
    export_payments_csv,
    import_template,
    parse_amount,
    parse_date,
    parse_type,
    parse_upload,
    preview_upload,
    validate_rows,
)


def csv_bytes(text: str) -> bytes:
    return text.encode("utf-8")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1234.56", "1234.56"),
        ("1,234.56", "1234.56"),
        ("1.234,56", "1234.56"),
        ("R$ 99,90", "99.90"),
        ("10", "10.00"),
    ],
)
def test_parse_amount_formats(raw, expected):
    assert parse_amount(raw) == Decimal(expected)


@pytest.mark.parametrize("raw", ["", "abc", "-5", "0"])
def test_parse_amount_rejects_bad_values(raw):
    with pytest.raises(InvalidInputError):
        parse_amount(raw)


@pytest.mark.parametrize("raw", ["15/03/2025", "2025-03-15", "15-03-2025", "15/03/25", "2025-03-15 00:00:00"])
def test_parse_date_formats(raw):
    assert parse_date(raw) == date(2025, 3, 15)


def test_parse_type_aliases_and_credit_card_rejection():
    assert parse_type(None) == ExpenseType.ONE_TIME
    assert parse_type("Parcelada") == ExpenseType.INSTALLMENT
    assert parse_type("fixed_recurring") == ExpenseType.FIXED_RECURRING
    with pytest.raises(InvalidInputError):
        parse_type("CREDIT_CARD")
    with pytest.raises(InvalidInputError):
        parse_type("sometimes")


def test_parse_upload_maps_portuguese_headers_and_semicolons():
    content = csv_bytes(
        "Descrição;Fornecedor;Valor;Data;Categoria\n"
        "Aluguel;Imobiliária;1.800,00;10/01/2025;Moradia\n"
        ";;;;\n"
    )
    rows = parse_upload("extrato.csv", content)
    assert rows == [{
        "description": "Aluguel",
        "supplier": "Imobiliária",
        "amount": "1.800,00",
        "date": "10/01/2025",
        "category": "Moradia",
        "type": None,
        "installments": None,
        "notes": None,
    }]


def test_parse_upload_reports_missing_columns():
    with pytest.raises(InvalidInputError) as exc:
        parse_upload("file.csv", csv_bytes("description,amount\nRent,10\n"))
    assert "date" in exc.value.message


def test_parse_upload_rejects_too_many_rows():
    lines = ["description,amount,date"] + [f"Item {i},10,01/01/2025" for i in range(MAX_IMPORT_ROWS + 1)]
    with pytest.raises(InvalidInputError):
        parse_upload("big.csv", csv_bytes("\n".join(lines)))


def test_parse_upload_rejects_unknown_extension():
    with pytest.raises(InvalidInputError):
        parse_upload("notes.pdf", b"%PDF")


def test_parse_upload_reads_xlsx():
    buf = io.BytesIO()
    pd.DataFrame(
        [["Notebook", "4500.00", "2025-01-15", "10"]],
        columns=["description", "amount", "date", "installments"],
    ).to_excel(buf, index=False, engine="openpyxl")

    rows = parse_upload("planilha.xlsx", buf.getvalue())
    assert rows[0]["description"] == "Notebook"
    assert rows[0]["installments"] == "10"


def test_validate_rows_collects_errors_with_row_numbers():
    rows = [
        {"description": "Rent", "amount": "1800", "date": "10/01/2025"},
        {"description": "", "amount": "10", "date": "10/01/2025"},
        {"description": "Laptop", "amount": "abc", "date": "10/01/2025"},
        {"description": "TV", "amount": "3000", "date": "10/01/2025", "installments": "6"},
    ]
    valid, errors = validate_rows(rows)

    assert [r.description for r in valid] == ["Rent", "TV"]
    assert valid[1].type == ExpenseType.INSTALLMENT
    assert valid[1].installments == 6
    assert [(e["row"], e["message"]) for e in errors] == [
        (3, "description is required"),
        (4, "Invalid amount: abc"),
    ]


def test_preview_flags_missing_headers():
    preview = preview_upload("file.csv", csv_bytes("description,valor\nRent,10\n"))
    assert preview["validation"] == {"is_valid": False, "missing_headers": ["date"]}
    assert preview["total_rows"] == 1


def test_exports_start_with_bom():
    expense = SimpleNamespace(description="Rent", supplier=None, category=SimpleNamespace(name="Moradia"))
    payment = SimpleNamespace(
        expense=expense, month=1, year=2025, due_date=date(2025, 1, 10),
        amount=Decimal("1800"), status=PaymentStatus.PAID, paid_at=None,
    )
    content = export_payments_csv([payment])
    assert content.startswith(BOM)

    rows = list(csv.reader(io.StringIO(content[len(BOM):])))
    assert rows[1] == ["Rent", "", "Moradia", "1", "2025", "2025-01-10", "1800.00", "PAID", ""]


def test_template_is_importable():
    rows = parse_upload("modelo.csv", import_template().encode("utf-8"))
    valid, errors = validate_rows(rows)
    assert errors == []
    assert len(valid) == 3
