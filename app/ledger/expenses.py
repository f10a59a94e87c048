# ==============================================================================
# app/ledger/expenses.py
# ------------------------------------------------------------------------------
# Expenses and their ledger fan-out. An expense always owns its balance
# transactions:
#   agency_topup -> EXCHANGE transfer (debit) + target agency top_up (credit)
#   anything else -> EXCHANGE expense (debit)
# Edits drop every linked transaction (reversing it) and derive them again.
# ==============================================================================

import logging

from app import db
from app.errors import NotFoundError, ValidationError
from app.ledger.balances import (EXCHANGE_CODE, EXPENSE, TOP_UP, TRANSFER, add_transaction,
                                 ensure_default_balances, get_balance_by_code, ledger_unit,
                                 remove_transaction)
from app.models import Expense

AGENCY_TOPUP = 'agency_topup'
EXPENSE_CATEGORIES = ('payroll', 'commission', 'chatterfy', 'tools', AGENCY_TOPUP,
                      'wallet_transfer', 'other')


def _validate(category, amount, target_balance_code):
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(f"Unknown expense category: {category!r}")
    if amount is None or amount <= 0:
        raise ValidationError("Expense amount must be positive")
    if category == AGENCY_TOPUP:
        if not target_balance_code:
            raise ValidationError("An agency top-up needs a target balance code")
        target = get_balance_by_code(target_balance_code)
        if target.type != 'agency':
            raise ValidationError(f"Balance {target.code} is not an agency balance")


def _post_transactions(expense):
    """Stages the ledger entries an expense implies."""
    exchange = get_balance_by_code(EXCHANGE_CODE)
    if expense.category == AGENCY_TOPUP:
        target = get_balance_by_code(expense.target_balance_code)
        add_transaction(exchange.id, TRANSFER, expense.amount, expense.date,
                        f"Transfer to {target.code}: {expense.description}", expense.id)
        add_transaction(target.id, TOP_UP, expense.amount, expense.date,
                        f"Top-up from {exchange.code}: {expense.description}", expense.id)
    else:
        add_transaction(exchange.id, EXPENSE, expense.amount, expense.date,
                        expense.description, expense.id)


def _drop_transactions(expense):
    for transaction in expense.transactions.all():
        remove_transaction(transaction)
    db.session.flush()


def add_expense(day, amount, description, category='other', country_id=None, target_balance_code=None):
    """Stages an expense with its ledger entries. Callers own the commit."""
    category = category or 'other'
    target_balance_code = target_balance_code.upper() if target_balance_code else None
    _validate(category, amount, target_balance_code)

    expense = Expense(date=day, amount=amount, description=description, category=category,
                      country_id=country_id,
                      target_balance_code=target_balance_code if category == AGENCY_TOPUP else None)
    db.session.add(expense)
    db.session.flush()
    _post_transactions(expense)
    return expense


def create_expense(day, amount, description, category='other', country_id=None, target_balance_code=None):
    ensure_default_balances()
    with ledger_unit(f"create expense {description!r}"):
        expense = add_expense(day, amount, description, category, country_id, target_balance_code)
    logging.info(f"Created expense {expense.id} ({expense.category}) {expense.amount:,.2f}")
    return expense


def get_expense(expense_id):
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError.for_resource('Expense', expense_id)
    return expense


def update_expense(expense_id, **changes):
    """
    Edits an expense and re-derives its ledger entries.

    Args:
        expense_id (int): The expense to edit.
        **changes: Any of date, amount, description, category, country_id,
            target_balance_code.
    """
    expense = get_expense(expense_id)
    category = changes.get('category', expense.category) or 'other'
    amount = changes.get('amount', expense.amount)
    target = changes.get('target_balance_code', expense.target_balance_code)
    target = target.upper() if target else None
    _validate(category, amount, target)

    with ledger_unit(f"update expense {expense_id}"):
        _drop_transactions(expense)
        expense.category = category
        expense.amount = amount
        expense.target_balance_code = target if category == AGENCY_TOPUP else None
        for field in ('date', 'description', 'country_id'):
            if field in changes:
                setattr(expense, field, changes[field])
        db.session.flush()
        _post_transactions(expense)
    logging.info(f"Updated expense {expense.id} ({expense.category}) {expense.amount:,.2f}")
    return expense


def delete_expense(expense_id):
    expense = get_expense(expense_id)
    with ledger_unit(f"delete expense {expense_id}"):
        _drop_transactions(expense)
        db.session.delete(expense)
    logging.info(f"Deleted expense {expense_id}")


def list_expenses(day=None, start_date=None, end_date=None, country_id=None):
    query = Expense.query
    if day:
        query = query.filter(Expense.date == day)
    else:
        if start_date:
            query = query.filter(Expense.date >= start_date)
        if end_date:
            query = query.filter(Expense.date <= end_date)
    if country_id:
        query = query.filter(Expense.country_id == country_id)
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()

