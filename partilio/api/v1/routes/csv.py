# partilio/api/v1/routes/csv.py
import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File, Form
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional
import uuid

from partilio.core.database import get_async_session
from partilio.core.auth import User
from partilio.core.errors import PartilioError
from partilio.crud.category import create_category_for_user, get_category_by_name_for_user
from partilio.crud.expense import create_expense_for_user, get_all_expenses_for_user
from partilio.crud.payer import get_default_payer
from partilio.crud.payment import get_payments_for_user
from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.schemas.category import CategoryCreate
from partilio.schemas.csv_import import CsvImportResult, CsvPreview, ImportRowError
from partilio.schemas.expense import ExpenseCreate, ExpenseRead
from partilio.utils.csv_io import (
    ImportRow,
    export_expenses_csv,
    export_payments_csv,
    import_template,
    parse_upload,
    preview_upload,
    validate_rows,
)
from partilio.api.deps import require_onboarding

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/csv", tags=["csv"])

def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

async def _read_upload(file: UploadFile) -> bytes:
    content = await file.read()
    if not content:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="The uploaded file is empty")
    return content

async def _resolve_category(
    name: Optional[str],
    user: User,
    create_missing: bool,
    cache: Dict[str, Optional[uuid.UUID]],
    created: List[str],
    db: AsyncSession,
) -> Optional[uuid.UUID]:
    name = (name or "").strip()
    if not name:
        return None
    key = name.lower()
    if key in cache:
        return cache[key]

    existing = await get_category_by_name_for_user(name, user.id, db)
    if existing is not None:
        cache[key] = existing.id
    elif create_missing:
        new_cat = await create_category_for_user(user.id, CategoryCreate(name=name), db)
        created.append(new_cat.name)
        cache[key] = new_cat.id
    else:
        cache[key] = None
    return cache[key]

def _to_expense(row: ImportRow, buyer_id: uuid.UUID, category_id: Optional[uuid.UUID]) -> ExpenseCreate:
    return ExpenseCreate(
        description=row.description,
        supplier=row.supplier,
        total_amount=row.amount,
        type=row.type,
        start_date=row.start_date,
        is_installment=row.type == ExpenseType.INSTALLMENT,
        number_of_installments=row.installments if row.type == ExpenseType.INSTALLMENT else None,
        buyer_id=buyer_id,
        category_id=category_id,
        notes=row.notes,
    )

@router.post("/import", response_model=CsvImportResult)
async def import_expenses(
    file: UploadFile = File(...),
    create_missing_categories: bool = Form(True),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    """
    Import expenses from a .csv, .xlsx or .xls file.
    Each row is validated on its own; bad rows are reported with their row number
    and the rest are created with the user's first active payer as buyer.
    """
    buyer = await get_default_payer(user.id, db)
    if buyer is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Create an active payer before importing")

    content = await _read_upload(file)
    try:
        rows = parse_upload(file.filename or "", content)
    except PartilioError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=e.message)

    valid, errors = validate_rows(rows)
    categories: Dict[str, Optional[uuid.UUID]] = {}
    created_categories: List[str] = []
    imported = []
    for row in valid:
        category_id = await _resolve_category(
            row.category, user, create_missing_categories, categories, created_categories, db
        )
        try:
            expense = await create_expense_for_user(user.id, _to_expense(row, buyer.id, category_id), db)
        except PartilioError as e:
            errors.append({"row": row.row_number, "message": e.message, "data": rows[row.row_number - 2]})
            continue
        imported.append(ExpenseRead.model_validate(expense))

    errors.sort(key=lambda e: e["row"])
    logger.info(f"CSV import for user {user.id}: {len(imported)} imported, {len(errors)} rejected")
    return CsvImportResult(
        imported_count=len(imported),
        error_count=len(errors),
        created_categories=created_categories,
        imported=imported,
        errors=[ImportRowError(**e) for e in errors],
    )

@router.post("/preview", response_model=CsvPreview)
async def preview_import(
    file: UploadFile = File(...),
    user: User = Depends(require_onboarding),
):
    content = await _read_upload(file)
    try:
        return preview_upload(file.filename or "", content)
    except PartilioError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=e.message)

@router.get("/export/expenses")
async def export_expenses(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    category_id: Optional[uuid.UUID] = Query(None),
    type: Optional[ExpenseType] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    expenses = await get_all_expenses_for_user(user.id, db, category_id=category_id, expense_type=type)
    if start_date:
        expenses = [e for e in expenses if e.start_date >= start_date]
    if end_date:
        expenses = [e for e in expenses if e.start_date <= end_date]

    logger.info(f"Exported {len(expenses)} expenses for user {user.id}")
    return _csv_response(export_expenses_csv(expenses), f"despesas_{date.today().isoformat()}.csv")

@router.get("/export/payments")
async def export_payments(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    category_id: Optional[uuid.UUID] = Query(None),
    type: Optional[ExpenseType] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    payments = await get_payments_for_user(
        user.id,
        db,
        statuses=[payment_status] if payment_status else None,
        start_date=start_date,
        end_date=end_date,
    )
    if category_id:
        payments = [p for p in payments if p.expense.category_id == category_id]
    if type:
        payments = [p for p in payments if p.expense.type == type]

    logger.info(f"Exported {len(payments)} payments for user {user.id}")
    return _csv_response(export_payments_csv(payments), f"pagamentos_{date.today().isoformat()}.csv")

@router.get("/template")
async def download_template(user: User = Depends(require_onboarding)):
    return _csv_response(import_template(), "modelo_importacao.csv")
