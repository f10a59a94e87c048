# ==============================================================================
# app/ledger/balances.py
# ------------------------------------------------------------------------------
# Balance ledger. Balance.current_amount only moves together with a
# BalanceTransaction row, inside the same database transaction:
#   create: insert row, apply effect
#   delete: reverse effect, delete row
#   update: reverse old effect, rewrite row, apply new effect
# ==============================================================================

import logging
from contextlib import contextmanager

from sqlalchemy import update

from app import db
from app.errors import NotFoundError, ValidationError
from app.models import Balance, BalanceTransaction

TOP_UP = 'top_up'
SPEND = 'spend'
EXPENSE = 'expense'
TRANSFER = 'transfer'
TRANSACTION_TYPES = (TOP_UP, SPEND, EXPENSE, TRANSFER)

EXCHANGE_CODE = 'EXCHANGE'

DEFAULT_BALANCES = [
    # (type, name, code)
    ('exchange', 'Exchange', EXCHANGE_CODE),
    ('agency', 'TRUST', 'TRUST'),
    ('agency', 'CROSSGIF', 'CROSSGIF'),
    ('agency', 'FBM', 'FBM'),
]


def signed_amount(transaction_type, amount):
    """The effect of a transaction on its balance: top-ups add, everything else subtracts."""
    if transaction_type == TOP_UP:
        return abs(amount)
    if transaction_type in (SPEND, EXPENSE, TRANSFER):
        return -abs(amount)
    raise ValidationError(f"Transaction type must be one of {', '.join(TRANSACTION_TYPES)}")


@contextmanager
def ledger_unit(description):
    """Commits the enclosed ledger writes together or rolls all of them back."""
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        logging.error(f"Ledger operation failed and was rolled back: {description}", exc_info=True)
        raise


def _adjust(balance_id, delta):
    # UPDATE balance SET current_amount = current_amount + :delta
    db.session.execute(
        update(Balance)
        .where(Balance.id == balance_id)
        .values(current_amount=Balance.current_amount + delta)
        .execution_options(synchronize_session=False)
    )


def _apply(transaction):
    _adjust(transaction.balance_id, signed_amount(transaction.type, transaction.amount))


def _reverse(transaction):
    _adjust(transaction.balance_id, -signed_amount(transaction.type, transaction.amount))


def ensure_default_balances():
    """Seeds the standard exchange and agency balances when none exist yet."""
    if Balance.query.count() > 0:
        return False
    for balance_type, name, code in DEFAULT_BALANCES:
        db.session.add(Balance(type=balance_type, name=name, code=code, current_amount=0,
                               currency='USDT', is_active=True))
    db.session.commit()
    logging.info("Seeded default balances")
    return True


def get_balance(balance_id):
    balance = db.session.get(Balance, balance_id)
    if balance is None:
        raise NotFoundError.for_resource('Balance', balance_id)
    return balance


def get_balance_by_code(code):
    balance = Balance.query.filter_by(code=code.upper()).first()
    if balance is None:
        raise NotFoundError.for_resource('Balance', code)
    return balance


def add_transaction(balance_id, transaction_type, amount, day, description=None, expense_id=None):
    """
    Stages a transaction and its balance effect in the current session. Use
    inside ledger_unit(); create_transaction() is the committing wrapper.
    """
    signed_amount(transaction_type, amount)
    if amount is None or amount <= 0:
        raise ValidationError("Transaction amount must be positive")
    get_balance(balance_id)

    transaction = BalanceTransaction(balance_id=balance_id, type=transaction_type, amount=abs(amount),
                                     date=day, description=description, expense_id=expense_id)
    db.session.add(transaction)
    db.session.flush()
    _apply(transaction)
    logging.info(f"Ledger {transaction_type} {amount:,.2f} on balance {balance_id} (tx {transaction.id})")
    return transaction


def remove_transaction(transaction):
    """Stages the reversal and deletion of a transaction in the current session."""
    _reverse(transaction)
    db.session.delete(transaction)
    logging.info(f"Ledger reversed {transaction.type} {transaction.amount:,.2f} "
                 f"on balance {transaction.balance_id} (tx {transaction.id})")


def create_transaction(balance_id, transaction_type, amount, day, description=None, expense_id=None):
    with ledger_unit(f"create {transaction_type} on balance {balance_id}"):
        transaction = add_transaction(balance_id, transaction_type, amount, day, description, expense_id)
    return transaction


def get_transaction(transaction_id):
    transaction = db.session.get(BalanceTransaction, transaction_id)
    if transaction is None:
        raise NotFoundError.for_resource('BalanceTransaction', transaction_id)
    return transaction


def delete_transaction(transaction_id):
    transaction = get_transaction(transaction_id)
    with ledger_unit(f"delete transaction {transaction_id}"):
        remove_transaction(transaction)


def update_transaction(transaction_id, **changes):
    """
    Edits a transaction. The old effect is reversed before any field changes
    and the new effect is applied after, so moving a transaction to another
    balance or type is safe.

    Args:
        transaction_id (int): The transaction to edit.
        **changes: Any of balance_id, type, amount, date, description.

    Returns:
        BalanceTransaction: The updated transaction.
    """
    transaction = get_transaction(transaction_id)
    new_type = changes.get('type', transaction.type)
    new_amount = changes.get('amount', transaction.amount)
    signed_amount(new_type, new_amount)
    if new_amount is None or new_amount <= 0:
        raise ValidationError("Transaction amount must be positive")
    if 'balance_id' in changes:
        get_balance(changes['balance_id'])

    with ledger_unit(f"update transaction {transaction_id}"):
        _reverse(transaction)
        transaction.type = new_type
        transaction.amount = abs(new_amount)
        for field in ('balance_id', 'date', 'description'):
            if field in changes:
                setattr(transaction, field, changes[field])
        db.session.flush()
        _apply(transaction)
    logging.info(f"Ledger updated tx {transaction_id}: {transaction.type} {transaction.amount:,.2f}")
    return transaction


def set_balance_amount(balance_id, amount):
    """Manual correction of a running balance, outside the transaction log."""
    balance = get_balance(balance_id)
    logging.warning(f"Manual correction of balance {balance.code}: {balance.current_amount} -> {amount}")
    balance.current_amount = amount
    db.session.commit()
    return balance


def list_transactions(balance_id=None, start_date=None, end_date=None, limit=50, offset=0):
    query = BalanceTransaction.query
    if balance_id:
        query = query.filter(BalanceTransaction.balance_id == balance_id)
    if start_date:
        query = query.filter(BalanceTransaction.date >= start_date)
    if end_date:
        query = query.filter(BalanceTransaction.date <= end_date)
    total = query.count()
    rows = (query.order_by(BalanceTransaction.date.desc(), BalanceTransaction.id.desc())
            .limit(limit).offset(offset).all())
    return rows, total
