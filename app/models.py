# ==============================================================================
# app/models.py
# ------------------------------------------------------------------------------
# Defines the database schema using SQLAlchemy ORM models.
# ==============================================================================

from datetime import datetime, timezone
from app import db
import json


def _iso(value):
    return value.isoformat() if value is not None else None


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Country(db.Model):
    """A project country. Daily metrics, employees and wallets hang off it."""
    __tablename__ = 'country'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(2), unique=True, nullable=False, index=True)
    currency = db.Column(db.String(3), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    settings = db.relationship('CountrySettings', backref='country', uselist=False,
                               cascade="all, delete-orphan")

    def __repr__(self):
        return f'<Country {self.code}>'

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'code': self.code,
                'currency': self.currency, 'is_active': self.is_active}


class CountrySettings(db.Model):
    """
    Optional per-country overrides for the metric calculator.
    A NULL column means "use the built-in constant".
    """
    __tablename__ = 'country_settings'
    id = db.Column(db.Integer, primary_key=True)
    country_id = db.Column(db.Integer, db.ForeignKey('country.id'), unique=True, nullable=False)

    priemka_commission_rate = db.Column(db.Float)
    buyer_payroll_rate = db.Column(db.Float)
    rd_handler_rate = db.Column(db.Float)
    fd_tier1_rate = db.Column(db.Float)
    fd_tier2_rate = db.Column(db.Float)
    fd_tier3_rate = db.Column(db.Float)
    fd_bonus_threshold = db.Column(db.Float)
    fd_bonus = db.Column(db.Float)
    fd_multiplier = db.Column(db.Float)
    head_designer_fixed = db.Column(db.Float)
    chatterfy_cost_default = db.Column(db.Float)

    FIELDS = (
        'priemka_commission_rate', 'buyer_payroll_rate', 'rd_handler_rate',
        'fd_tier1_rate', 'fd_tier2_rate', 'fd_tier3_rate', 'fd_bonus_threshold',
        'fd_bonus', 'fd_multiplier', 'head_designer_fixed', 'chatterfy_cost_default',
    )

    def as_calculation_settings(self):
        """Only the overrides that are actually set."""
        return {f: getattr(self, f) for f in self.FIELDS if getattr(self, f) is not None}

    def to_dict(self):
        data = {f: getattr(self, f) for f in self.FIELDS}
        data['country_id'] = self.country_id
        return data


class DailyMetrics(db.Model):
    """
    One row per (date, country). Raw inputs and every derived figure are stored
    side by side; derived columns are always rewritten from a full recompute.
    """
    __tablename__ = 'daily_metrics'
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    country_id = db.Column(db.Integer, db.ForeignKey('country.id'), nullable=False, index=True)
    country = db.relationship('Country', backref=db.backref('daily_metrics', lazy='dynamic'))

    # --- Raw inputs ---
    spend_trust = db.Column(db.Float, default=0, nullable=False)
    spend_crossgif = db.Column(db.Float, default=0, nullable=False)
    spend_fbm = db.Column(db.Float, default=0, nullable=False)
    revenue_local_priemka = db.Column(db.Float, default=0, nullable=False)
    revenue_usdt_priemka = db.Column(db.Float, default=0, nullable=False)
    revenue_local_own = db.Column(db.Float, default=0, nullable=False)
    revenue_usdt_own = db.Column(db.Float, default=0, nullable=False)
    fd_count = db.Column(db.Integer, default=0, nullable=False)
    fd_sum_local = db.Column(db.Float, default=0, nullable=False)
    payroll_content = db.Column(db.Float, default=0, nullable=False)
    payroll_reviews = db.Column(db.Float, default=0, nullable=False)
    payroll_designer = db.Column(db.Float, default=0, nullable=False)
    payroll_head_designer = db.Column(db.Float, default=0, nullable=False)
    chatterfy_cost = db.Column(db.Float, default=0, nullable=False)
    additional_expenses = db.Column(db.Float, default=0, nullable=False)

    # Manually entered balance facts, informational only
    ad_account_balance_fact = db.Column(db.Float, default=0, nullable=False)
    balance_priemka_fact = db.Column(db.Float, default=0, nullable=False)
    balance_own_fact = db.Column(db.Float, default=0, nullable=False)

    # --- Derived ---
    total_spend = db.Column(db.Float, default=0, nullable=False)
    agency_fee = db.Column(db.Float, default=0, nullable=False)
    exchange_rate_priemka = db.Column(db.Float, default=0, nullable=False)
    exchange_rate_own = db.Column(db.Float, default=0, nullable=False)
    commission_priemka = db.Column(db.Float, default=0, nullable=False)
    total_revenue_usdt = db.Column(db.Float, default=0, nullable=False)
    fd_sum_usdt = db.Column(db.Float, default=0, nullable=False)
    rd_sum_local = db.Column(db.Float, default=0, nullable=False)
    rd_sum_usdt = db.Column(db.Float, default=0, nullable=False)
    payroll_rd_handler = db.Column(db.Float, default=0, nullable=False)
    payroll_fd_handler = db.Column(db.Float, default=0, nullable=False)
    payroll_buyer = db.Column(db.Float, default=0, nullable=False)
    total_payroll = db.Column(db.Float, default=0, nullable=False)
    total_expenses_usdt = db.Column(db.Float, default=0, nullable=False)
    expenses_without_spend = db.Column(db.Float, default=0, nullable=False)
    net_profit_math = db.Column(db.Float, default=0, nullable=False)
    roi = db.Column(db.Float, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (db.UniqueConstraint('date', 'country_id', name='_date_country_uc'),)

    RAW_FIELDS = (
        'spend_trust', 'spend_crossgif', 'spend_fbm',
        'revenue_local_priemka', 'revenue_usdt_priemka',
        'revenue_local_own', 'revenue_usdt_own',
        'fd_count', 'fd_sum_local',
        'payroll_content', 'payroll_reviews', 'payroll_designer', 'payroll_head_designer',
        'chatterfy_cost', 'additional_expenses',
    )
    FACT_FIELDS = ('ad_account_balance_fact', 'balance_priemka_fact', 'balance_own_fact')
    DERIVED_FIELDS = (
        'total_spend', 'agency_fee', 'exchange_rate_priemka', 'exchange_rate_own',
        'commission_priemka', 'total_revenue_usdt', 'fd_sum_usdt', 'rd_sum_local',
        'rd_sum_usdt', 'payroll_rd_handler', 'payroll_fd_handler', 'payroll_buyer',
        'total_payroll', 'total_expenses_usdt', 'expenses_without_spend',
        'net_profit_math', 'roi',
    )

    def __repr__(self):
        return f'<DailyMetrics {self.date} country={self.country_id}>'

    def raw_inputs(self):
        return {f: getattr(self, f) for f in self.RAW_FIELDS}

    def to_dict(self):
        data = {'id': self.id, 'date': _iso(self.date), 'country_id': self.country_id,
                'country_code': self.country.code if self.country else None}
        for f in self.RAW_FIELDS + self.FACT_FIELDS + self.DERIVED_FIELDS:
            data[f] = getattr(self, f)
        return data


class BuyerMetrics(db.Model):
    """One buyer's desk results for a day in a country."""
    __tablename__ = 'buyer_metrics'
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employee.id'), nullable=True, index=True)
    country_id = db.Column(db.Integer, db.ForeignKey('country.id'), nullable=False, index=True)

    spend = db.Column(db.Float, default=0, nullable=False)
    spend_manual = db.Column(db.Float)
    subscriptions = db.Column(db.Integer, default=0, nullable=False)
    dialogs = db.Column(db.Integer, default=0, nullable=False)
    fd_count = db.Column(db.Integer, default=0, nullable=False)

    cost_per_subscription = db.Column(db.Float, default=0, nullable=False)
    cost_per_fd = db.Column(db.Float, default=0, nullable=False)
    conversion_rate = db.Column(db.Float, default=0, nullable=False)
    payroll_amount = db.Column(db.Float, default=0, nullable=False)

    desk_name = db.Column(db.String(128))
    platform_name = db.Column(db.String(64))
    notes = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, default=_utcnow)

    employee = db.relationship('Employee', backref=db.backref('buyer_metrics', lazy='dynamic'))
    country = db.relationship('Country')

    __table_args__ = (db.UniqueConstraint('date', 'employee_id', 'country_id', name='_date_buyer_country_uc'),)

    INPUT_FIELDS = ('spend', 'spend_manual', 'subscriptions', 'dialogs', 'fd_count')
    DERIVED_FIELDS = ('cost_per_subscription', 'cost_per_fd', 'conversion_rate', 'payroll_amount')

    def __repr__(self):
        return f'<BuyerMetrics {self.date} employee={self.employee_id} country={self.country_id}>'

    def to_dict(self):
        data = {'id': self.id, 'date': _iso(self.date), 'employee_id': self.employee_id,
                'employee_name': self.employee.name if self.employee else None,
                'country_id': self.country_id,
                'country_code': self.country.code if self.country else None,
                'desk_name': self.desk_name, 'platform_name': self.platform_name, 'notes': self.notes}
        for f in self.INPUT_FIELDS + self.DERIVED_FIELDS:
            data[f] = getattr(self, f)
        return data


class Employee(db.Model):
    """
    A role-tagged payroll actor. Rate columns are optional overrides of the
    global payroll settings.
    """
    __tablename__ = 'employee'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False, index=True)
    country_id = db.Column(db.Integer, db.ForeignKey('country.id'), nullable=True)
    country = db.relationship('Country', backref=db.backref('employees', lazy='dynamic'))

    fixed_rate = db.Column(db.Float)
    percent_rate = db.Column(db.Float)
    fd_tier1_rate = db.Column(db.Float)
    fd_tier2_rate = db.Column(db.Float)
    fd_tier3_rate = db.Column(db.Float)
    fd_bonus_threshold = db.Column(db.Float)
    fd_bonus = db.Column(db.Float)

    payment_type = db.Column(db.String(32), default='buffer')
    buffer_days = db.Column(db.Integer, default=7)
    current_balance = db.Column(db.Float, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow)

    payments = db.relationship('Payment', backref='employee', lazy='dynamic')

    RATE_FIELDS = ('fixed_rate', 'percent_rate', 'fd_tier1_rate', 'fd_tier2_rate',
                   'fd_tier3_rate', 'fd_bonus_threshold', 'fd_bonus')

    def __repr__(self):
        return f'<Employee {self.id}: {self.name} ({self.role})>'

    def to_dict(self):
        data = {'id': self.id, 'name': self.name, 'role': self.role,
                'country_id': self.country_id,
                'country_code': self.country.code if self.country else None,
                'payment_type': self.payment_type, 'buffer_days': self.buffer_days,
                'current_balance': self.current_balance, 'is_active': self.is_active}
        for f in self.RATE_FIELDS:
            data[f] = getattr(self, f)
        return data


class Payment(db.Model):
    """A payout against an employee. Only `paid` payments count as paid payroll."""
    __tablename__ = 'payment'
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employee.id'), nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    payment_date = db.Column(db.Date, nullable=False, index=True)
    period_start = db.Column(db.Date)
    period_end = db.Column(db.Date)
    payment_type = db.Column(db.String(32), default='salary')
    status = db.Column(db.String(16), default='pending', nullable=False)
    notes = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, default=_utcnow)

    def __repr__(self):
        return f'<Payment {self.id}: {self.amount} ({self.status})>'

    def to_dict(self):
        return {'id': self.id, 'employee_id': self.employee_id, 'amount': self.amount,
                'payment_date': _iso(self.payment_date), 'period_start': _iso(self.period_start),
                'period_end': _iso(self.period_end), 'payment_type': self.payment_type,
                'status': self.status, 'notes': self.notes}


class AppSetting(db.Model):
    """
    Stores key-value pairs for all application settings and business rules.
    Payroll rates live here and are resolved with defaults on every read.
    """
    __tablename__ = 'app_setting'
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), unique=True, nullable=False, index=True)
    value = db.Column(db.String(256), nullable=False)
    description = db.Column(db.String(512))
    value_type = db.Column(db.String(32), default='string') # e.g., 'float', 'int', 'string', 'json'

    def __repr__(self):
        return f'<AppSetting {self.key}: {self.value}>'

    def get_value(self):
        """Casts the string value to its correct Python type."""
        if self.value_type == 'float':
            return float(self.value)
        if self.value_type == 'int':
            return int(self.value)
        if self.value_type == 'json':
            return json.loads(self.value)
        return self.value


class Balance(db.Model):
    """
    A named money account. current_amount is a running total maintained by the
    ledger, it is never recomputed from transactions on read.
    """
    __tablename__ = 'balance'
    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False) # 'exchange' or 'agency'
    name = db.Column(db.String(64), nullable=False)
    code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    current_amount = db.Column(db.Float, default=0, nullable=False)
    currency = db.Column(db.String(8), default='USDT', nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    transactions = db.relationship('BalanceTransaction', backref='balance', lazy='dynamic')

    def __repr__(self):
        return f'<Balance {self.code}: {self.current_amount}>'

    def to_dict(self):
        return {'id': self.id, 'type': self.type, 'name': self.name, 'code': self.code,
                'current_amount': self.current_amount, 'currency': self.currency,
                'is_active': self.is_active}


class BalanceTransaction(db.Model):
    """Ledger entry. amount is always stored positive, the type carries the sign."""
    __tablename__ = 'balance_transaction'
    id = db.Column(db.Integer, primary_key=True)
    balance_id = db.Column(db.Integer, db.ForeignKey('balance.id'), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    description = db.Column(db.String(512))
    expense_id = db.Column(db.Integer, db.ForeignKey('expense.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)

    def __repr__(self):
        return f'<BalanceTransaction {self.id}: {self.type} {self.amount}>'

    def to_dict(self):
        return {'id': self.id, 'balance_id': self.balance_id,
                'balance_code': self.balance.code if self.balance else None,
                'type': self.type, 'amount': self.amount, 'date': _iso(self.date),
                'description': self.description, 'expense_id': self.expense_id}


class Expense(db.Model):
    """
    A spend record. Its ledger side effects are owned by app.ledger.expenses;
    never insert or delete an Expense directly.
    """
    __tablename__ = 'expense'
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    description = db.Column(db.String(512), nullable=False)
    category = db.Column(db.String(32), default='other', nullable=False)
    country_id = db.Column(db.Integer, db.ForeignKey('country.id'), nullable=True)
    target_balance_code = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow)

    country = db.relationship('Country')
    transactions = db.relationship('BalanceTransaction', backref='expense', lazy='dynamic')

    def __repr__(self):
        return f'<Expense {self.id}: {self.category} {self.amount}>'

    def to_dict(self):
        return {'id': self.id, 'date': _iso(self.date), 'amount': self.amount,
                'description': self.description, 'category': self.category,
                'country_id': self.country_id,
                'target_balance_code': self.target_balance_code,
                'transaction_ids': [t.id for t in self.transactions]}


class CountryWallet(db.Model):
    """An on-chain address whose incoming transfers count as a country's own revenue."""
    __tablename__ = 'country_wallet'
    id = db.Column(db.Integer, primary_key=True)
    country_id = db.Column(db.Integer, db.ForeignKey('country.id'), nullable=False)
    name = db.Column(db.String(64))
    address = db.Column(db.String(128), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    country = db.relationship('Country')

    def to_dict(self):
        return {'id': self.id, 'country_id': self.country_id, 'name': self.name,
                'address': self.address, 'is_active': self.is_active}


class AgencyWallet(db.Model):
    """An agency deposit address; outgoing transfers to it top up the agency balance."""
    __tablename__ = 'agency_wallet'
    id = db.Column(db.Integer, primary_key=True)
    balance_id = db.Column(db.Integer, db.ForeignKey('balance.id'), nullable=False)
    name = db.Column(db.String(64))
    address = db.Column(db.String(128), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    balance = db.relationship('Balance')

    def to_dict(self):
        return {'id': self.id, 'balance_id': self.balance_id,
                'balance_code': self.balance.code if self.balance else None,
                'name': self.name, 'address': self.address, 'is_active': self.is_active}


class WalletTransaction(db.Model):
    """A transfer seen on the main wallet. tx_id uniqueness makes syncing idempotent."""
    __tablename__ = 'wallet_transaction'
    id = db.Column(db.Integer, primary_key=True)
    tx_id = db.Column(db.String(128), unique=True, nullable=False, index=True)
    from_address = db.Column(db.String(128), nullable=False)
    to_address = db.Column(db.String(128), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    token_symbol = db.Column(db.String(16), default='USDT')
    timestamp = db.Column(db.DateTime, nullable=False, index=True)
    is_incoming = db.Column(db.Boolean, nullable=False)
    is_processed = db.Column(db.Boolean, default=False, nullable=False)
    processed_at = db.Column(db.DateTime)
    comment = db.Column(db.String(512))
    country_id = db.Column(db.Integer, db.ForeignKey('country.id'), nullable=True)
    expense_id = db.Column(db.Integer, db.ForeignKey('expense.id'), nullable=True)

    def to_dict(self):
        return {'id': self.id, 'tx_id': self.tx_id, 'from_address': self.from_address,
                'to_address': self.to_address, 'amount': self.amount,
                'token_symbol': self.token_symbol, 'timestamp': _iso(self.timestamp),
                'is_incoming': self.is_incoming, 'is_processed': self.is_processed,
                'processed_at': _iso(self.processed_at), 'comment': self.comment,
                'country_id': self.country_id, 'expense_id': self.expense_id}
