# ==============================================================================
# app/ledger/wallet.py
# ------------------------------------------------------------------------------
# Reconciles transfers seen on the main USDT wallet against the books.
# The collector that talks to the chain explorer hands over normalised
# transfers; this module stores them once (tx_id is unique) and applies each
# one to the books at most once (is_processed).
# ==============================================================================

import logging
from datetime import datetime, timezone

from app import db
from app.calculator.daily import add_own_revenue
from app.errors import NotFoundError, ValidationError
from app.ledger.balances import (EXCHANGE_CODE, TOP_UP, TRANSFER, add_transaction,
                                 ensure_default_balances, get_balance_by_code, ledger_unit)
from app.ledger.expenses import add_expense
from app.models import AgencyWallet, CountryWallet, WalletTransaction


def _short(value, length=8):
    return f"{value[:length]}..." if value else ''


def _parse_transfer(raw):
    """Validates one collector record and coerces its types."""
    tx_id = raw.get('tx_id')
    if not tx_id:
        raise ValidationError("Every transfer needs a tx_id")
    try:
        amount = float(raw.get('amount', 0))
    except (TypeError, ValueError):
        raise ValidationError(f"Transfer {tx_id}: amount must be a number")

    timestamp = raw.get('timestamp')
    if isinstance(timestamp, (int, float)):
        # Chain explorers report milliseconds since the epoch
        timestamp = datetime.fromtimestamp(timestamp / 1000, timezone.utc).replace(tzinfo=None)
    elif isinstance(timestamp, str):
        try:
            timestamp = datetime.fromisoformat(timestamp.replace('Z', '+00:00')).replace(tzinfo=None)
        except ValueError:
            raise ValidationError(f"Transfer {tx_id}: timestamp is not ISO 8601")
    elif timestamp is None:
        timestamp = datetime.now(timezone.utc).replace(tzinfo=None)

    return {
        'tx_id': str(tx_id),
        'from_address': raw.get('from_address') or '',
        'to_address': raw.get('to_address') or '',
        'amount': amount,
        'token_symbol': raw.get('token_symbol') or 'USDT',
        'timestamp': timestamp,
        'is_incoming': bool(raw.get('is_incoming')),
    }


class WalletReconciler:
    """
    Applies wallet transfers to revenue, balances and expenses.

    Address books are loaded once per run; lookups are case-insensitive.
    """

    def __init__(self):
        self.country_wallets = {
            w.address.lower(): w for w in CountryWallet.query.filter_by(is_active=True).all()}
        self.agency_wallets = {
            w.address.lower(): w for w in AgencyWallet.query.filter_by(is_active=True).all()}
        self.stats = {'new': 0, 'existing': 0, 'processed': 0, 'unmatched': 0}

    def _match_country(self, address):
        match = self.country_wallets.get(address.lower())
        return match.country_id if match else None

    def _store(self, transfer):
        existing = WalletTransaction.query.filter_by(tx_id=transfer['tx_id']).first()
        if existing is not None:
            self.stats['existing'] += 1
            if existing.is_incoming and not existing.is_processed and existing.country_id is None:
                # The sender may have been registered since the last sync
                existing.country_id = self._match_country(existing.from_address)
            return existing
        wallet_tx = WalletTransaction(is_processed=False, **transfer)
        if transfer['is_incoming']:
            wallet_tx.country_id = self._match_country(transfer['from_address'])
        db.session.add(wallet_tx)
        db.session.flush()
        self.stats['new'] += 1
        return wallet_tx

    def _mark_processed(self, wallet_tx):
        wallet_tx.is_processed = True
        wallet_tx.processed_at = datetime.now(timezone.utc).replace(tzinfo=None)
        self.stats['processed'] += 1

    def _process_incoming(self, wallet_tx):
        if not wallet_tx.country_id:
            self.stats['unmatched'] += 1
            return
        add_own_revenue(wallet_tx.timestamp.date(), wallet_tx.country_id, wallet_tx.amount)
        self._mark_processed(wallet_tx)

    def _process_outgoing(self, wallet_tx):
        day = wallet_tx.timestamp.date()
        agency = self.agency_wallets.get(wallet_tx.to_address.lower())
        if agency is not None:
            exchange = get_balance_by_code(EXCHANGE_CODE)
            add_transaction(exchange.id, TRANSFER, wallet_tx.amount, day,
                            f"Transfer to {agency.balance.code} (auto, TX: {_short(wallet_tx.tx_id)})")
            add_transaction(agency.balance_id, TOP_UP, wallet_tx.amount, day,
                            f"Top-up from exchange (auto, TX: {_short(wallet_tx.tx_id)})")
        else:
            expense = add_expense(day, wallet_tx.amount,
                                  f"Outgoing USDT transfer (TX: {_short(wallet_tx.tx_id)}) "
                                  f"to {_short(wallet_tx.to_address)}",
                                  category='wallet_transfer')
            wallet_tx.expense_id = expense.id
        self._mark_processed(wallet_tx)

    def process(self, wallet_tx):
        if wallet_tx.is_processed or wallet_tx.amount <= 0:
            return
        if wallet_tx.is_incoming:
            self._process_incoming(wallet_tx)
        else:
            self._process_outgoing(wallet_tx)

    def sync(self, raw_transfers):
        """
        Stores and applies a batch of transfers in one database transaction.

        Args:
            raw_transfers (list[dict]): Records with tx_id, from_address,
                to_address, amount, timestamp and is_incoming.

        Returns:
            dict: Counters for new, existing, processed and unmatched transfers.
        """
        transfers = [_parse_transfer(raw) for raw in raw_transfers]
        ensure_default_balances()
        with ledger_unit(f"wallet sync of {len(transfers)} transfers"):
            for transfer in transfers:
                self.process(self._store(transfer))
        logging.info(f"Wallet sync finished: {self.stats}")
        return dict(self.stats)


def sync_wallet_transfers(raw_transfers):
    return WalletReconciler().sync(raw_transfers)


def assign_country(wallet_tx_id, country_id, comment=None):
    """
    Attaches an unmatched incoming transfer to a country and books it as that
    country's own revenue.
    """
    wallet_tx = db.session.get(WalletTransaction, wallet_tx_id)
    if wallet_tx is None:
        raise NotFoundError.for_resource('WalletTransaction', wallet_tx_id)
    if comment is not None:
        wallet_tx.comment = comment
    if country_id is None or wallet_tx.is_processed or not wallet_tx.is_incoming:
        db.session.commit()
        return wallet_tx

    with ledger_unit(f"assign wallet transaction {wallet_tx_id} to country {country_id}"):
        wallet_tx.country_id = country_id
        WalletReconciler().process(wallet_tx)
    return wallet_tx


def list_wallet_transactions(country_id=None, start_date=None, end_date=None,
                             is_processed=None, page=1, limit=50):
    query = WalletTransaction.query
    if country_id:
        query = query.filter(WalletTransaction.country_id == country_id)
    if start_date:
        query = query.filter(WalletTransaction.timestamp >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        query = query.filter(WalletTransaction.timestamp <= datetime.combine(end_date, datetime.max.time()))
    if is_processed is not None:
        query = query.filter(WalletTransaction.is_processed == is_processed)
    total = query.count()
    rows = (query.order_by(WalletTransaction.timestamp.desc())
            .offset((page - 1) * limit).limit(limit).all())
    return rows, total
