# tests/test_state/test_loans.py
import pytest
from datetime import timedelta

from core.state.loans import create_loan, delete_loan, new_loan, return_loan
from core.state.selectors import borrower_label, is_on_loan, is_overdue, open_loans_for_book, overdue_loans


def test_new_loan(now):
    """Test that a new loan gets an id and starts open."""
    loan = new_loan('book-2', borrower_name='Meera', loan_date=now)
    assert loan.book_id == 'book-2'
    assert loan.loan_date == now
    assert loan.return_date is None
    assert len(loan.id) == 9


def test_create_loan_allows_several_open_loans(family_state, now):
    """Test that a second open loan for the same book is accepted."""
    state = create_loan(family_state, new_loan('book-1', user_id='u-kid', loan_date=now))
    assert len(open_loans_for_book(state, 'book-1')) == 2
    assert len(family_state.loans) == 1


def test_return_loan(family_state, now):
    """Test that returning stamps the loan and frees the book."""
    state = return_loan(family_state, 'loan-1', returned_at=now)
    assert state.loans[0].return_date == now
    assert not is_on_loan(state, 'book-1')
    assert is_on_loan(family_state, 'book-1')


def test_return_loan_twice_keeps_first_date(family_state, now):
    """Test that returning an already returned loan is a no-op."""
    state = return_loan(family_state, 'loan-1', returned_at=now)
    assert return_loan(state, 'loan-1', returned_at=now + timedelta(days=3)) is state


def test_return_unknown_loan(family_state):
    """Test that returning an unknown loan changes nothing."""
    assert return_loan(family_state, 'nope') is family_state


def test_delete_loan(family_state):
    """Test that deleting removes the loan and unknown ids are a no-op."""
    assert delete_loan(family_state, 'loan-1').loans == []
    assert delete_loan(family_state, 'nope') is family_state


def test_overdue_after_thirty_days(family_state, now):
    """Test that only open loans older than thirty days are overdue."""
    loan = family_state.loans[0]
    assert is_overdue(loan, now)
    assert not is_overdue(loan, loan.loan_date + timedelta(days=30))
    assert is_overdue(loan, loan.loan_date + timedelta(days=30, seconds=1))

    returned = return_loan(family_state, 'loan-1', returned_at=now)
    assert overdue_loans(returned, now) == []


def test_borrower_label(family_state, now):
    """Test that family borrowers show their profile name and guests their given name."""
    assert borrower_label(family_state, family_state.loans[0]) == 'Rahul'
    assert borrower_label(family_state, new_loan('book-1', user_id='u-kid', loan_date=now)) == 'Ananya'
    assert borrower_label(family_state, new_loan('book-1', loan_date=now)) == 'Guest'
