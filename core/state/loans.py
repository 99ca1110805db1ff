# core/state/loans.py
import logging
from datetime import datetime
from typing import Optional

from core.models.state import AppState, Loan
from core.utils.formatting import generate_id, utc_now

logger = logging.getLogger(__name__)


def new_loan(
    book_id: str,
    user_id: Optional[str] = None,
    borrower_name: Optional[str] = None,
    loan_date: Optional[datetime] = None,
) -> Loan:
    return Loan(
        id=generate_id(),
        book_id=book_id,
        user_id=user_id,
        borrower_name=borrower_name,
        loan_date=loan_date or utc_now(),
    )


def create_loan(state: AppState, loan: Loan) -> AppState:
    """Append a loan.

    A book may have several open loans at once (households owning more than
    one copy), so no check is made against existing loans.
    """
    return state.model_copy(update={'loans': list(state.loans) + [loan]})


def return_loan(
    state: AppState,
    loan_id: str,
    returned_at: Optional[datetime] = None,
) -> AppState:
    """Stamp a loan as returned. Unknown or already returned loans are left alone."""
    returned_at = returned_at or utc_now()
    changed = False
    loans = []
    for loan in state.loans:
        if loan.id == loan_id and loan.return_date is None:
            loan = loan.model_copy(update={'return_date': returned_at})
            changed = True
        loans.append(loan)
    if not changed:
        logger.debug("No open loan %s to return", loan_id)
        return state
    return state.model_copy(update={'loans': loans})


def delete_loan(state: AppState, loan_id: str) -> AppState:
    loans = [l for l in state.loans if l.id != loan_id]
    if len(loans) == len(state.loans):
        return state
    return state.model_copy(update={'loans': loans})
