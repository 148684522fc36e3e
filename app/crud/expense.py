from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.expense import Expense
from app.schemas.expense import ExpenseCreate, ExpenseUpdate


class CRUDExpense(CRUDBase[Expense, ExpenseCreate, ExpenseUpdate]):
    def get_by_report(
        self,
        db: Session,
        *,
        report_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Expense]:
        query = db.query(Expense).filter(Expense.report_id == report_id)
        if date_from:
            query = query.filter(Expense.expense_date >= date_from)
        if date_to:
            query = query.filter(Expense.expense_date <= date_to)
        return query.order_by(Expense.expense_date, Expense.id).all()


expense = CRUDExpense(Expense)
