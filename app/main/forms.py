# ==============================================================================
# app/main/forms.py
# ------------------------------------------------------------------------------
# Defines input forms using Flask-WTF for request validation. The API feeds
# them from JSON bodies (see routes._form), CSRF is disabled in Config.
# ==============================================================================

from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, FloatField, IntegerField, SelectField, StringField
from wtforms.validators import InputRequired, Length, NumberRange, Optional

from app.calculator.payroll import EmployeeRole
from app.ledger.balances import TRANSACTION_TYPES
from app.ledger.expenses import EXPENSE_CATEGORIES


class CountryForm(FlaskForm):
    """Form for adding or editing a country."""
    name = StringField('Name', validators=[InputRequired(message="This field is required."), Length(max=100)])
    code = StringField('Code', validators=[InputRequired(message="This field is required."), Length(min=2, max=2)])
    currency = StringField('Currency', validators=[InputRequired(message="This field is required."), Length(min=3, max=3)])
    is_active = BooleanField('Active', default=True)


class CountrySettingsForm(FlaskForm):
    """Per-country calculation overrides. Empty fields fall back to the global rates."""
    priemka_commission_rate = FloatField('Priemka commission rate', validators=[Optional(), NumberRange(min=0, max=1)])
    buyer_payroll_rate = FloatField('Buyer payroll rate', validators=[Optional(), NumberRange(min=0, max=1)])
    rd_handler_rate = FloatField('RD handler rate', validators=[Optional(), NumberRange(min=0, max=1)])
    fd_tier1_rate = FloatField('FD tier 1 rate', validators=[Optional(), NumberRange(min=0)])
    fd_tier2_rate = FloatField('FD tier 2 rate', validators=[Optional(), NumberRange(min=0)])
    fd_tier3_rate = FloatField('FD tier 3 rate', validators=[Optional(), NumberRange(min=0)])
    fd_bonus_threshold = FloatField('FD bonus threshold', validators=[Optional(), NumberRange(min=0)])
    fd_bonus = FloatField('FD bonus', validators=[Optional(), NumberRange(min=0)])
    fd_multiplier = FloatField('FD multiplier', validators=[Optional(), NumberRange(min=0)])
    head_designer_fixed = FloatField('Head designer fixed', validators=[Optional(), NumberRange(min=0)])
    chatterfy_cost_default = FloatField('Chatterfy cost default', validators=[Optional(), NumberRange(min=0)])


class DailyMetricsForm(FlaskForm):
    """Raw daily inputs. Every number is optional; the calculator fills in the rest."""
    date = DateField('Date', validators=[Optional()])
    country_id = IntegerField('Country', validators=[Optional()])
    spend_trust = FloatField('Spend TRUST', validators=[Optional(), NumberRange(min=0)])
    spend_crossgif = FloatField('Spend CROSSGIF', validators=[Optional(), NumberRange(min=0)])
    spend_fbm = FloatField('Spend FBM', validators=[Optional(), NumberRange(min=0)])
    revenue_local_priemka = FloatField('Priemka revenue (local)', validators=[Optional(), NumberRange(min=0)])
    revenue_usdt_priemka = FloatField('Priemka revenue (USDT)', validators=[Optional(), NumberRange(min=0)])
    revenue_local_own = FloatField('Own revenue (local)', validators=[Optional(), NumberRange(min=0)])
    revenue_usdt_own = FloatField('Own revenue (USDT)', validators=[Optional(), NumberRange(min=0)])
    fd_count = IntegerField('FD count', validators=[Optional(), NumberRange(min=0)])
    fd_sum_local = FloatField('FD sum (local)', validators=[Optional(), NumberRange(min=0)])
    payroll_content = FloatField('Content payroll', validators=[Optional(), NumberRange(min=0)])
    payroll_reviews = FloatField('Reviews payroll', validators=[Optional(), NumberRange(min=0)])
    payroll_designer = FloatField('Designer payroll', validators=[Optional(), NumberRange(min=0)])
    payroll_head_designer = FloatField('Head designer payroll', validators=[Optional(), NumberRange(min=0)])
    chatterfy_cost = FloatField('Chatterfy', validators=[Optional(), NumberRange(min=0)])
    additional_expenses = FloatField('Additional expenses', validators=[Optional()])
    ad_account_balance_fact = FloatField('Ad account balance (fact)', validators=[Optional()])
    balance_priemka_fact = FloatField('Priemka balance (fact)', validators=[Optional()])
    balance_own_fact = FloatField('Own balance (fact)', validators=[Optional()])


class BuyerMetricsForm(FlaskForm):
    """A buyer's desk results for one day."""
    date = DateField('Date', validators=[Optional()])
    country_id = IntegerField('Country', validators=[Optional()])
    employee_id = IntegerField('Buyer', validators=[Optional()])
    spend = FloatField('Spend', validators=[Optional(), NumberRange(min=0)])
    spend_manual = FloatField('Spend (manual)', validators=[Optional(), NumberRange(min=0)])
    subscriptions = IntegerField('Subscriptions', validators=[Optional(), NumberRange(min=0)])
    dialogs = IntegerField('Dialogs', validators=[Optional(), NumberRange(min=0)])
    fd_count = IntegerField('FD count', validators=[Optional(), NumberRange(min=0)])
    desk_name = StringField('Desk', validators=[Optional(), Length(max=128)])
    platform_name = StringField('Platform', validators=[Optional(), Length(max=64)])
    notes = StringField('Notes', validators=[Optional(), Length(max=512)])


class EmployeeForm(FlaskForm):
    """Form for adding or editing an employee."""
    name = StringField('Name', validators=[InputRequired(message="This field is required."), Length(max=128)])
    role = SelectField('Role', choices=[(r.value, r.value) for r in EmployeeRole],
                       validators=[InputRequired(message="Please choose a role.")])
    country_id = IntegerField('Country', validators=[Optional()])
    fixed_rate = FloatField('Fixed rate', validators=[Optional(), NumberRange(min=0)])
    percent_rate = FloatField('Percent rate', validators=[Optional(), NumberRange(min=0, max=100)])
    fd_tier1_rate = FloatField('FD tier 1 rate', validators=[Optional(), NumberRange(min=0)])
    fd_tier2_rate = FloatField('FD tier 2 rate', validators=[Optional(), NumberRange(min=0)])
    fd_tier3_rate = FloatField('FD tier 3 rate', validators=[Optional(), NumberRange(min=0)])
    fd_bonus_threshold = FloatField('FD bonus threshold', validators=[Optional(), NumberRange(min=0)])
    fd_bonus = FloatField('FD bonus', validators=[Optional(), NumberRange(min=0)])
    payment_type = SelectField('Payment type', choices=[('buffer', 'buffer'), ('daily', 'daily'),
                                                        ('weekly', 'weekly'), ('monthly', 'monthly')],
                               default='buffer', validators=[Optional()])
    buffer_days = IntegerField('Buffer days', default=7, validators=[Optional(), NumberRange(min=0)])
    is_active = BooleanField('Active', default=True)


class PaymentForm(FlaskForm):
    """Form for recording a payment to an employee."""
    employee_id = IntegerField('Employee', validators=[InputRequired(message="This field is required.")])
    amount = FloatField('Amount', validators=[InputRequired(message="This field is required."), NumberRange(min=0)])
    payment_date = DateField('Payment date', validators=[InputRequired(message="This field is required.")])
    period_start = DateField('Period start', validators=[Optional()])
    period_end = DateField('Period end', validators=[Optional()])
    payment_type = SelectField('Payment type', choices=[('salary', 'salary'), ('bonus', 'bonus'),
                                                        ('advance', 'advance')],
                               default='salary', validators=[Optional()])
    status = SelectField('Status', choices=[('pending', 'pending'), ('paid', 'paid')],
                         default='pending', validators=[Optional()])
    notes = StringField('Notes', validators=[Optional(), Length(max=512)])


class AppSettingForm(FlaskForm):
    """Form for editing a single application setting."""
    value = StringField('Value', validators=[InputRequired(message="This field is required."), Length(max=256)])


class BalanceForm(FlaskForm):
    """Form for adding a balance."""
    type = SelectField('Type', choices=[('exchange', 'exchange'), ('agency', 'agency')],
                       validators=[InputRequired(message="Please choose a type.")])
    name = StringField('Name', validators=[InputRequired(message="This field is required."), Length(max=64)])
    code = StringField('Code', validators=[InputRequired(message="This field is required."), Length(max=32)])
    current_amount = FloatField('Current amount', default=0, validators=[Optional()])
    currency = StringField('Currency', default='USDT', validators=[Optional(), Length(max=8)])


class BalanceTransactionForm(FlaskForm):
    """Form for adding or editing a ledger entry."""
    balance_id = IntegerField('Balance', validators=[InputRequired(message="This field is required.")])
    type = SelectField('Type', choices=[(t, t) for t in TRANSACTION_TYPES],
                       validators=[InputRequired(message="Please choose a type.")])
    amount = FloatField('Amount', validators=[InputRequired(message="This field is required."),
                                              NumberRange(min=0.01, message="Amount must be positive.")])
    date = DateField('Date', validators=[InputRequired(message="This field is required.")])
    description = StringField('Description', validators=[Optional(), Length(max=512)])


class ExpenseForm(FlaskForm):
    """Form for adding or editing an expense."""
    date = DateField('Date', validators=[InputRequired(message="This field is required.")])
    amount = FloatField('Amount', validators=[InputRequired(message="This field is required."),
                                              NumberRange(min=0.01, message="Amount must be positive.")])
    description = StringField('Description', validators=[InputRequired(message="This field is required."),
                                                         Length(max=512)])
    category = SelectField('Category', choices=[(c, c) for c in EXPENSE_CATEGORIES],
                           default='other', validators=[Optional()])
    country_id = IntegerField('Country', validators=[Optional()])
    target_balance_code = StringField('Target balance', validators=[Optional(), Length(max=32)])


class CountryWalletForm(FlaskForm):
    country_id = IntegerField('Country', validators=[InputRequired(message="This field is required.")])
    name = StringField('Name', validators=[Optional(), Length(max=64)])
    address = StringField('Address', validators=[InputRequired(message="This field is required."), Length(max=128)])


class AgencyWalletForm(FlaskForm):
    balance_id = IntegerField('Balance', validators=[InputRequired(message="This field is required.")])
    name = StringField('Name', validators=[Optional(), Length(max=64)])
    address = StringField('Address', validators=[InputRequired(message="This field is required."), Length(max=128)])


class WalletTransactionForm(FlaskForm):
    """Admin edit of a wallet transaction: assign a country and/or comment."""
    country_id = IntegerField('Country', validators=[Optional()])
    comment = StringField('Comment', validators=[Optional(), Length(max=512)])
