# core/utils/formatting.py
import secrets
import string
from datetime import date, datetime, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 9


def generate_id() -> str:
    """Generate a random 9 character base-36 identifier"""
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


def utc_now() -> datetime:
    return datetime.now(UTC)


def _as_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def calculate_age(dob: Union[date, str, None], today: Optional[date] = None) -> int:
    """Age in whole years on `today`. Missing or unparseable birth dates give 0."""
    birth = _as_date(dob)
    if birth is None:
        return 0
    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def calculate_grade(dob: Union[date, str, None], today: Optional[date] = None) -> str:
    """School grade label derived from a child's birth date"""
    age = calculate_age(dob, today)
    if age < 3:
        return 'Toddler'
    if age < 5:
        return 'Preschool'
    if age < 11:
        return f'Class {age - 5}'
    if age < 18:
        return f'Class {age - 5} (Secondary)'
    return 'Graduate'


def _group_indian(digits: str) -> str:
    # 12345678 -> 1,23,45,678
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ','.join(groups + [tail])


def format_currency(value: Union[int, float, None]) -> str:
    """Format a value as whole Indian rupees, e.g. 123456 -> '₹1,23,456'"""
    amount = Decimal(str(value or 0)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    sign = '-' if amount < 0 else ''
    return f"{sign}₹{_group_indian(str(abs(int(amount))))}"


def format_date(value: Union[date, datetime, str, None], default: str = 'Never') -> str:
    """Human readable date such as '05 Mar 2024'"""
    day = _as_date(value)
    if day is None:
        return default
    return day.strftime('%d %b %Y')


def iso_date(value: Optional[datetime] = None) -> str:
    """The YYYY-MM-DD part of a timestamp (now if omitted)"""
    return (value or utc_now()).date().isoformat()
