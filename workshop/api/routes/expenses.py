from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import func, select

from workshop.api.deps import DbSession
from workshop.exceptions import ValidationError
from workshop.models.expense import Expense, EXPENSE_PAYMENT_STATUSES
from workshop.schemas.expense import ExpenseCreate, ExpenseUpdate, ExpenseResponse
from workshop.services.amounts import parse_nullable_number

router = APIRouter()


def _required_amount(value: Any) -> float:
    amount = parse_nullable_number(value, "amount")
    if amount is None:
        raise ValidationError("amount is required")
    return amount


def _normalize_status(value: Optional[str]) -> str:
    if not value:
        return "pending"
    normalized = value.lower()
    if normalized not in EXPENSE_PAYMENT_STATUSES:
        raise ValidationError("payment_status must be one of pending, paid, or unpaid")
    return normalized


def _require_method_when_paid(payment_status: str, payment_method: Optional[str]) -> None:
    if payment_status == "paid" and not payment_method:
        raise ValidationError("payment_method is required when payment_status is paid")


async def _get_expense_or_404(db, expense_id: int) -> Expense:
    result = await db.execute(select(Expense).where(Expense.id == expense_id))
    expense = result.scalar_one_or_none()
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return expense


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(data: ExpenseCreate, db: DbSession):
    if not data.description:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="description and amount are required",
        )

    amount = _required_amount(data.amount)
    payment_status = _normalize_status(data.payment_status)
    _require_method_when_paid(payment_status, data.payment_method)

    expense = Expense(
        description=data.description,
        category=data.category,
        amount=amount,
        payment_status=payment_status,
        payment_method=data.payment_method or None,
        remarks=data.remarks or None,
    )
    if data.expense_date is not None:
        expense.expense_date = data.expense_date

    db.add(expense)
    await db.commit()
    await db.refresh(expense)
    return expense


@router.get("", response_model=list[ExpenseResponse])
async def list_expenses(
    db: DbSession,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
):
    """Expenses, latest first, optionally within a date range."""
    query = select(Expense)
    if start_date:
        query = query.where(func.date(Expense.expense_date) >= func.date(start_date))
    if end_date:
        query = query.where(func.date(Expense.expense_date) <= func.date(end_date))

    result = await db.execute(query.order_by(Expense.expense_date.desc(), Expense.id.desc()))
    return result.scalars().all()


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(expense_id: int, data: ExpenseUpdate, db: DbSession):
    expense = await _get_expense_or_404(db, expense_id)
    supplied = data.model_fields_set

    amount = _required_amount(data.amount) if "amount" in supplied else expense.amount
    payment_status = (
        _normalize_status(data.payment_status)
        if "payment_status" in supplied
        else expense.payment_status or "pending"
    )
    payment_method = (data.payment_method or None) if "payment_method" in supplied else expense.payment_method
    _require_method_when_paid(payment_status, payment_method)

    if "description" in supplied:
        expense.description = data.description
    if "category" in supplied:
        expense.category = data.category
    if "expense_date" in supplied:
        expense.expense_date = data.expense_date
    if "remarks" in supplied:
        expense.remarks = data.remarks
    expense.amount = amount
    expense.payment_status = payment_status
    expense.payment_method = payment_method

    await db.commit()
    await db.refresh(expense)
    return expense


@router.delete("/{expense_id}")
async def delete_expense(expense_id: int, db: DbSession):
    expense = await _get_expense_or_404(db, expense_id)
    await db.delete(expense)
    await db.commit()
    return {"message": "Expense deleted"}
