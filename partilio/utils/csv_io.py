# partilio/utils/csv_io.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
import csv
import io

import pandas as pd

from partilio.core.errors import InvalidInputError
from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.utils.financial import require_positive, to_decimal

BOM = "\ufeff"
MAX_IMPORT_ROWS = 1000
PREVIEW_ROWS = 10

# Canonical column -> accepted header spellings
COLUMNS: Dict[str, List[str]] = {
    "description": ["description", "descricao", "descrição", "expense", "despesa"],
    "supplier": ["supplier", "fornecedor", "merchant", "store", "loja"],
    "amount": ["amount", "valor", "total", "total_amount", "value"],
    "date": ["date", "data", "start_date", "due_date", "vencimento"],
    "category": ["category", "categoria"],
    "type": ["type", "tipo"],
    "installments": ["installments", "parcelas", "number_of_installments"],
    "notes": ["notes", "observacoes", "observações", "obs"],
}
REQUIRED_COLUMNS = ("description", "amount", "date")

TYPE_ALIASES: Dict[str, ExpenseType] = {
    "unica": ExpenseType.ONE_TIME,
    "única": ExpenseType.ONE_TIME,
    "one-time": ExpenseType.ONE_TIME,
    "fixa": ExpenseType.FIXED_RECURRING,
    "fixed": ExpenseType.FIXED_RECURRING,
    "variavel": ExpenseType.VARIABLE_RECURRING,
    "variável": ExpenseType.VARIABLE_RECURRING,
    "variable": ExpenseType.VARIABLE_RECURRING,
    "parcelada": ExpenseType.INSTALLMENT,
    "installment": ExpenseType.INSTALLMENT,
}

DATE_FORMATS = ["%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y", "%d/%m/%y"]

TEMPLATE_ROWS = [
    ["Supermercado", "Mercado Central", "350.75", "05/01/2025", "Alimentação", "ONE_TIME", "", ""],
    ["Aluguel", "Imobiliária", "1800.00", "10/01/2025", "Moradia", "FIXED_RECURRING", "", "Contrato anual"],
    ["Notebook", "Loja Tech", "4500.00", "15/01/2025", "Outros", "INSTALLMENT", "10", ""],
]


@dataclass
class ImportRow:
    row_number: int
    description: str
    amount: Decimal
    start_date: date
    type: ExpenseType = ExpenseType.ONE_TIME
    supplier: Optional[str] = None
    category: Optional[str] = None
    installments: Optional[int] = None
    notes: Optional[str] = None


def _normalize(s: Any) -> str:
    return str(s).strip().lower().replace(BOM, "") if s is not None else ""


def _blank(value: Any) -> bool:
    return value is None or _normalize(value) in ("", "nan", "none")


def map_headers(header: Iterable[str]) -> Dict[str, int]:
    """Column index for every canonical column found in `header`."""
    normalized = [_normalize(h) for h in header]
    found: Dict[str, int] = {}
    for column, candidates in COLUMNS.items():
        for idx, name in enumerate(normalized):
            if name in candidates:
                found[column] = idx
                break
    return found


def missing_headers(header: Iterable[str]) -> List[str]:
    found = map_headers(header)
    return [c for c in REQUIRED_COLUMNS if c not in found]


def _rows_from_table(header: List[str], data_rows: Iterable[List[Any]]) -> List[Dict[str, Optional[str]]]:
    index = map_headers(header)
    rows: List[Dict[str, Optional[str]]] = []
    for raw in data_rows:
        if all(_blank(cell) for cell in raw):
            continue
        row: Dict[str, Optional[str]] = {}
        for column in COLUMNS:
            idx = index.get(column)
            value = raw[idx] if idx is not None and idx < len(raw) else None
            row[column] = None if _blank(value) else str(value).strip()
        rows.append(row)
    return rows


def read_csv_table(file_bytes: bytes) -> Tuple[List[str], List[List[str]]]:
    text = file_bytes.decode("utf-8-sig", errors="ignore")
    sample = text[:2048]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel
    rows = list(csv.reader(io.StringIO(text), dialect))
    if not rows:
        return [], []
    return [h.strip() for h in rows[0]], rows[1:]


def read_excel_table(file_bytes: bytes) -> Tuple[List[str], List[List[Any]]]:
    buf = io.BytesIO(file_bytes)
    try:
        df = pd.read_excel(buf, engine="openpyxl", dtype=str)
    except Exception:
        buf.seek(0)
        try:
            df = pd.read_excel(buf, dtype=str)
        except Exception as e:
            raise InvalidInputError(f"Could not read spreadsheet: {e}")
    if df.empty:
        return [str(c) for c in df.columns], []
    df = df.where(pd.notna(df), None)
    return [str(c) for c in df.columns], df.values.tolist()


def read_table(filename: str, file_bytes: bytes) -> Tuple[List[str], List[List[Any]]]:
    name = (filename or "").lower()
    if name.endswith((".xlsx", ".xls")):
        return read_excel_table(file_bytes)
    if name.endswith(".csv") or not name:
        return read_csv_table(file_bytes)
    raise InvalidInputError("Unsupported file type. Upload a .csv, .xlsx or .xls file")


def parse_upload(filename: str, file_bytes: bytes) -> List[Dict[str, Optional[str]]]:
    """Canonical row dicts (description, amount, date, ...) from an uploaded file."""
    header, data_rows = read_table(filename, file_bytes)
    if not header:
        raise InvalidInputError("The file is empty")
    missing = missing_headers(header)
    if missing:
        raise InvalidInputError(f"Missing required columns: {', '.join(missing)}")
    rows = _rows_from_table(header, data_rows)
    if len(rows) > MAX_IMPORT_ROWS:
        raise InvalidInputError(f"Too many rows: at most {MAX_IMPORT_ROWS} can be imported at once")
    return rows


def preview_upload(filename: str, file_bytes: bytes) -> Dict[str, Any]:
    header, data_rows = read_table(filename, file_bytes)
    missing = missing_headers(header) if header else list(REQUIRED_COLUMNS)
    rows = _rows_from_table(header, data_rows) if header else []
    return {
        "headers": header,
        "total_rows": len(rows),
        "rows": rows[:PREVIEW_ROWS],
        "validation": {"is_valid": not missing, "missing_headers": missing},
    }


# ────────────────────────────────────────────────────────────────────────────────
# ROW VALIDATION
# ────────────────────────────────────────────────────────────────────────────────
def parse_amount(value: Optional[str]) -> Decimal:
    """Accepts 1234.56, 1,234.56, 1.234,56 and a leading R$."""
    if _blank(value):
        raise InvalidInputError("amount is required")
    s = str(value).strip().replace("R$", "").replace(" ", "")
    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")
    try:
        amount = to_decimal(s)
    except InvalidInputError:
        raise InvalidInputError(f"Invalid amount: {value}")
    return require_positive(amount, "amount")


def parse_date(value: Optional[str]) -> date:
    if _blank(value):
        raise InvalidInputError("date is required")
    s = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    # spreadsheets hand back ISO timestamps
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        raise InvalidInputError(f"Invalid date: {value}")


def parse_type(value: Optional[str]) -> ExpenseType:
    if _blank(value):
        return ExpenseType.ONE_TIME
    key = _normalize(value)
    if key in TYPE_ALIASES:
        return TYPE_ALIASES[key]
    try:
        expense_type = ExpenseType(key.upper())
    except ValueError:
        raise InvalidInputError(f"Unknown expense type: {value}")
    if expense_type == ExpenseType.CREDIT_CARD:
        raise InvalidInputError("Credit card expenses cannot be imported from a file")
    return expense_type


def parse_installments(value: Optional[str]) -> Optional[int]:
    if _blank(value):
        return None
    try:
        count = int(float(str(value).strip()))
    except ValueError:
        raise InvalidInputError(f"Invalid number of installments: {value}")
    if count <= 0:
        raise InvalidInputError("installments must be greater than zero")
    return count


def validate_row(row: Dict[str, Optional[str]], row_number: int) -> ImportRow:
    description = (row.get("description") or "").strip()
    if not description:
        raise InvalidInputError("description is required")
    if len(description) > 255:
        raise InvalidInputError("description is longer than 255 characters")

    expense_type = parse_type(row.get("type"))
    installments = parse_installments(row.get("installments"))
    if installments and installments > 1 and expense_type == ExpenseType.ONE_TIME:
        expense_type = ExpenseType.INSTALLMENT

    return ImportRow(
        row_number=row_number,
        description=description,
        amount=parse_amount(row.get("amount")),
        start_date=parse_date(row.get("date")),
        type=expense_type,
        supplier=row.get("supplier"),
        category=row.get("category"),
        installments=installments,
        notes=row.get("notes"),
    )


def validate_rows(rows: List[Dict[str, Optional[str]]]) -> Tuple[List[ImportRow], List[Dict[str, Any]]]:
    """Split rows into valid ones and per-row errors. Row numbers count the header as row 1."""
    valid: List[ImportRow] = []
    errors: List[Dict[str, Any]] = []
    for offset, row in enumerate(rows):
        row_number = offset + 2
        try:
            valid.append(validate_row(row, row_number))
        except InvalidInputError as e:
            errors.append({"row": row_number, "message": e.message, "data": row})
    return valid, errors


# ────────────────────────────────────────────────────────────────────────────────
# EXPORT
# ────────────────────────────────────────────────────────────────────────────────
EXPENSE_EXPORT_HEADER = [
    "description", "supplier", "category", "type", "total_amount", "installment_amount",
    "start_date", "installments", "months", "buyer", "payer", "divided", "splits", "paused", "notes",
]
PAYMENT_EXPORT_HEADER = [
    "description", "supplier", "category", "month", "year", "due_date", "amount", "status", "paid_at",
]


def _fmt(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (ExpenseType, PaymentStatus)):
        return value.value
    return str(value)


def _write(header: List[str], rows: Iterable[List[Any]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(header)
    for row in rows:
        writer.writerow([_fmt(v) for v in row])
    return BOM + buf.getvalue()


def export_expenses_csv(expenses: Iterable[Any]) -> str:
    rows = []
    for e in expenses:
        splits = "; ".join(f"{s.payer.name if s.payer else s.payer_id}: {s.percentage:.2f}%" for s in e.splits)
        rows.append([
            e.description, e.supplier, e.category.name if e.category else None, e.type,
            e.total_amount, e.installment_amount, e.start_date, e.number_of_installments,
            e.number_of_months, e.buyer.name if e.buyer else None, e.payer.name if e.payer else None,
            e.is_divided, splits, e.paused, e.notes,
        ])
    return _write(EXPENSE_EXPORT_HEADER, rows)


def export_payments_csv(payments: Iterable[Any]) -> str:
    rows = []
    for p in payments:
        expense = p.expense
        rows.append([
            expense.description, expense.supplier, expense.category.name if expense.category else None,
            p.month, p.year, p.due_date, p.amount, p.status, p.paid_at,
        ])
    return _write(PAYMENT_EXPORT_HEADER, rows)


def import_template() -> str:
    header = ["description", "supplier", "amount", "date", "category", "type", "installments", "notes"]
    return _write(header, TEMPLATE_ROWS)
