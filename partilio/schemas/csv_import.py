# partilio/schemas/csv_import.py
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from partilio.schemas.expense import ExpenseRead

class ImportRowError(BaseModel):
    row: int
    message: str
    data: Dict[str, Optional[str]] = {}

class CsvImportResult(BaseModel):
    imported_count: int
    error_count: int
    created_categories: List[str] = []
    imported: List[ExpenseRead] = []
    errors: List[ImportRowError] = []

class HeaderValidation(BaseModel):
    is_valid: bool
    missing_headers: List[str] = []

class CsvPreview(BaseModel):
    headers: List[Any]
    total_rows: int
    rows: List[Dict[str, Optional[str]]]
    validation: HeaderValidation
