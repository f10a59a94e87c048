# ==============================================================================
# app/main/routes.py
# ------------------------------------------------------------------------------
# Defines the JSON API for the main application blueprint.
# This file acts as the controller: it validates input with the forms in
# app.main.forms and delegates all business rules to app.calculator and
# app.ledger.
# ==============================================================================

import os
from datetime import date, datetime

from flask import current_app, jsonify, request
from werkzeug.datastructures import MultiDict
from werkzeug.utils import secure_filename

from app import db
from app.main import bp
from app.models import (AgencyWallet, AppSetting, Balance, BuyerMetrics, Country, CountrySettings,
                        CountryWallet, DailyMetrics, Employee, Payment)
from app.errors import ConflictError, NotFoundError, ValidationError
from app.calculator import buying
from app.calculator.daily import (create_daily_metrics, delete_daily_metrics, update_daily_metrics)
from app.calculator.payroll import (calculate_all_employees_payroll, calculate_employee_payroll,
                                    summarize_payroll_by_week)
from app.calculator.settings import (DISPLAY_SETTING_DEFAULTS, PAYROLL_SETTING_DEFAULTS,
                                     get_all_settings, setting_description)
from app.calculator.validator import import_metrics_dataframe, validate_metrics_file
from app.ledger import balances as ledger
from app.ledger import expenses as expense_ledger
from app.ledger import wallet as wallet_ledger
from app.main.forms import (AgencyWalletForm, AppSettingForm, BalanceForm, BalanceTransactionForm,
                            BuyerMetricsForm, CountryForm, CountrySettingsForm, CountryWalletForm,
                            DailyMetricsForm, EmployeeForm, ExpenseForm, PaymentForm, WalletTransactionForm)
from app.main.utils import prepare_dashboard_data, query_metrics, str_to_bool

# --- Helper Functions ---

def allowed_file(filename):
    """Checks if the file extension is allowed based on the app config."""
    return '.' in filename and \
           os.path.splitext(filename)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']


def _payload():
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _to_formdata(data):
    formdata = MultiDict()
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        formdata.add(key, str(value))
    return formdata


def _validated(form_class, payload, base=None):
    """
    Runs a form over a JSON payload. For updates, pass the stored record as
    base so untouched fields keep their values; a null in the payload clears.
    """
    data = dict(base or {})
    data.update(payload)
    form = form_class(formdata=_to_formdata(data))
    if not form.validate():
        raise ValidationError("Invalid input", details=form.errors)
    return form


def _form_data(form, only=None):
    data = {}
    for name, field in form._fields.items():
        if name == 'csrf_token' or (only is not None and name not in only):
            continue
        value = field.data
        data[name] = None if value == '' else value
    return data


def _date_arg(name, required=False):
    value = request.args.get(name)
    if not value:
        if required:
            raise ValidationError(f"Query parameter '{name}' is required (YYYY-MM-DD)")
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be a date (YYYY-MM-DD)")


def _get_or_404(model, ident):
    obj = db.session.get(model, ident)
    if obj is None:
        raise NotFoundError.for_resource(model.__name__, ident)
    return obj


def _require_country(country_id):
    if country_id is not None:
        _get_or_404(Country, country_id)

# --- Countries ---

@bp.route('/countries', methods=['GET'])
def list_countries():
    query = Country.query
    if 'active' in request.args:
        query = query.filter_by(is_active=str_to_bool(request.args['active']))
    return jsonify([c.to_dict() for c in query.order_by(Country.name).all()])


@bp.route('/countries', methods=['POST'])
def create_country():
    form = _validated(CountryForm, _payload(), base={'is_active': True})
    data = _form_data(form)
    data['code'] = data['code'].upper()
    data['currency'] = data['currency'].upper()
    if Country.query.filter_by(code=data['code']).first():
        raise ConflictError(f"Country code {data['code']} already exists")
    country = Country(**data)
    db.session.add(country)
    db.session.commit()
    current_app.logger.info(f"Created country {country.code}")
    return jsonify(country.to_dict()), 201


@bp.route('/countries/<int:country_id>', methods=['GET'])
def get_country(country_id):
    return jsonify(_get_or_404(Country, country_id).to_dict())


@bp.route('/countries/<int:country_id>', methods=['PUT'])
def update_country(country_id):
    country = _get_or_404(Country, country_id)
    form = _validated(CountryForm, _payload(), base=country.to_dict())
    data = _form_data(form)
    data['code'] = data['code'].upper()
    data['currency'] = data['currency'].upper()
    for name, value in data.items():
        setattr(country, name, value)
    db.session.commit()
    return jsonify(country.to_dict())


@bp.route('/countries/<int:country_id>', methods=['DELETE'])
def delete_country(country_id):
    country = _get_or_404(Country, country_id)
    if (country.daily_metrics.count() or country.employees.count()
            or BuyerMetrics.query.filter_by(country_id=country.id).count()):
        country.is_active = False
        db.session.commit()
        current_app.logger.info(f"Deactivated country {country.code} (has history)")
        return jsonify({'deactivated': True, 'country': country.to_dict()})
    db.session.delete(country)
    db.session.commit()
    return jsonify({'deleted': True})

# --- Country settings ---

@bp.route('/countries/<int:country_id>/settings', methods=['GET'])
def get_country_settings(country_id):
    country = _get_or_404(Country, country_id)
    if country.settings is None:
        return jsonify({'country_id': country.id, **{f: None for f in CountrySettings.FIELDS}})
    return jsonify(country.settings.to_dict())


@bp.route('/countries/<int:country_id>/settings', methods=['PUT'])
def update_country_settings(country_id):
    country = _get_or_404(Country, country_id)
    payload = _payload()
    base = country.settings.to_dict() if country.settings else {}
    form = _validated(CountrySettingsForm, payload, base=base)

    settings = country.settings or CountrySettings(country_id=country.id)
    for name, value in _form_data(form).items():
        setattr(settings, name, value)
    db.session.add(settings)
    db.session.commit()
    current_app.logger.info(f"Updated calculation overrides for {country.code}")
    return jsonify(settings.to_dict())


@bp.route('/countries/<int:country_id>/settings', methods=['DELETE'])
def delete_country_settings(country_id):
    country = _get_or_404(Country, country_id)
    if country.settings is not None:
        db.session.delete(country.settings)
        db.session.commit()
    return jsonify({'deleted': True})

# --- Daily metrics ---

@bp.route('/metrics', methods=['GET'])
def list_metrics():
    filter_zero_spend = str_to_bool(
        request.args.get('filter_zero_spend', get_all_settings().get('filterZeroSpend')))
    metrics = query_metrics(_date_arg('start_date'), _date_arg('end_date'),
                            request.args.get('country_id', type=int), filter_zero_spend)
    return jsonify([m.to_dict() for m in metrics])


@bp.route('/metrics', methods=['POST'])
def create_metrics():
    payload = _payload()
    form = _validated(DailyMetricsForm, payload)
    data = _form_data(form)
    if data['date'] is None or data['country_id'] is None:
        raise ValidationError("date and country_id are required")
    row = create_daily_metrics(data.pop('date'), data.pop('country_id'), data)
    return jsonify(row.to_dict()), 201


@bp.route('/metrics/<int:metrics_id>', methods=['GET'])
def get_metrics(metrics_id):
    return jsonify(_get_or_404(DailyMetrics, metrics_id).to_dict())


@bp.route('/metrics/<int:metrics_id>', methods=['PUT'])
def update_metrics(metrics_id):
    payload = _payload()
    form = _validated(DailyMetricsForm, payload)
    inputs = _form_data(form, only=set(payload) - {'date', 'country_id'})
    row = update_daily_metrics(metrics_id, inputs)
    return jsonify(row.to_dict())


@bp.route('/metrics/<int:metrics_id>', methods=['DELETE'])
def remove_metrics(metrics_id):
    delete_daily_metrics(metrics_id)
    return jsonify({'deleted': True})

# --- Buyer metrics ---

@bp.route('/buying', methods=['GET'])
def list_buyer_metrics():
    rows = buying.list_buyer_metrics(_date_arg('start_date'), _date_arg('end_date'),
                                     request.args.get('country_id', type=int),
                                     request.args.get('employee_id', type=int))
    return jsonify({'metrics': [r.to_dict() for r in rows],
                    'totals': buying.summarize_buyer_metrics(rows)['totals']})


@bp.route('/buying', methods=['POST'])
def create_buyer_metrics():
    data = _form_data(_validated(BuyerMetricsForm, _payload()))
    if data['date'] is None or data['country_id'] is None:
        raise ValidationError("date and country_id are required")
    row = buying.create_buyer_metrics(data.pop('date'), data.pop('country_id'), **data)
    return jsonify(row.to_dict()), 201


@bp.route('/buying/summary', methods=['GET'])
def buyer_metrics_summary():
    rows = buying.list_buyer_metrics(_date_arg('start_date'), _date_arg('end_date'),
                                     request.args.get('country_id', type=int))
    return jsonify(buying.summarize_buyer_metrics(rows))


@bp.route('/buying/<int:metrics_id>', methods=['GET'])
def get_buyer_metrics(metrics_id):
    return jsonify(buying.get_buyer_metrics(metrics_id).to_dict())


@bp.route('/buying/<int:metrics_id>', methods=['PUT'])
def update_buyer_metrics(metrics_id):
    row = buying.get_buyer_metrics(metrics_id)
    payload = _payload()
    form = _validated(BuyerMetricsForm, payload, base=row.to_dict())
    row = buying.update_buyer_metrics(metrics_id, **_form_data(form, only=set(payload)))
    return jsonify(row.to_dict())


@bp.route('/buying/<int:metrics_id>', methods=['DELETE'])
def delete_buyer_metrics(metrics_id):
    buying.delete_buyer_metrics(metrics_id)
    return jsonify({'deleted': True})

# --- Employees ---

@bp.route('/employees', methods=['GET'])
def list_employees():
    query = Employee.query
    if 'active' in request.args:
        query = query.filter_by(is_active=str_to_bool(request.args['active']))
    if request.args.get('role'):
        query = query.filter_by(role=request.args['role'])
    if request.args.get('country_id', type=int):
        query = query.filter_by(country_id=request.args.get('country_id', type=int))
    return jsonify([e.to_dict() for e in query.order_by(Employee.role, Employee.name).all()])


@bp.route('/employees', methods=['POST'])
def create_employee():
    form = _validated(EmployeeForm, _payload(), base={'is_active': True})
    data = _form_data(form)
    _require_country(data['country_id'])
    employee = Employee(**data)
    db.session.add(employee)
    db.session.commit()
    current_app.logger.info(f"Created employee {employee.name} ({employee.role})")
    return jsonify(employee.to_dict()), 201


@bp.route('/employees/<int:employee_id>', methods=['GET'])
def get_employee(employee_id):
    return jsonify(_get_or_404(Employee, employee_id).to_dict())


@bp.route('/employees/<int:employee_id>', methods=['PUT'])
def update_employee(employee_id):
    employee = _get_or_404(Employee, employee_id)
    form = _validated(EmployeeForm, _payload(), base=employee.to_dict())
    data = _form_data(form)
    _require_country(data['country_id'])
    for name, value in data.items():
        setattr(employee, name, value)
    db.session.commit()
    return jsonify(employee.to_dict())


@bp.route('/employees/<int:employee_id>', methods=['DELETE'])
def delete_employee(employee_id):
    employee = _get_or_404(Employee, employee_id)
    if employee.payments.count() or employee.buyer_metrics.count():
        employee.is_active = False
        db.session.commit()
        current_app.logger.info(f"Deactivated employee {employee.name} (has history)")
        return jsonify({'deactivated': True, 'employee': employee.to_dict()})
    db.session.delete(employee)
    db.session.commit()
    return jsonify({'deleted': True})

# --- Payments ---

def _owed_effect(payment):
    """How much a payment has reduced its employee's current balance."""
    return payment.amount if payment.status == 'paid' else 0


@bp.route('/payments', methods=['GET'])
def list_payments():
    query = Payment.query
    if request.args.get('employee_id', type=int):
        query = query.filter_by(employee_id=request.args.get('employee_id', type=int))
    if request.args.get('status'):
        query = query.filter_by(status=request.args['status'])
    start_date, end_date = _date_arg('start_date'), _date_arg('end_date')
    if start_date:
        query = query.filter(Payment.payment_date >= start_date)
    if end_date:
        query = query.filter(Payment.payment_date <= end_date)
    return jsonify([p.to_dict() for p in query.order_by(Payment.payment_date.desc()).all()])


@bp.route('/payments', methods=['POST'])
def create_payment():
    form = _validated(PaymentForm, _payload())
    data = _form_data(form)
    data['status'] = data['status'] or 'pending'
    data['payment_type'] = data['payment_type'] or 'salary'
    employee = _get_or_404(Employee, data['employee_id'])
    payment = Payment(**data)
    db.session.add(payment)
    employee.current_balance -= _owed_effect(payment)
    db.session.commit()
    current_app.logger.info(f"Recorded {payment.status} payment of {payment.amount:,.2f} for {employee.name}")
    return jsonify(payment.to_dict()), 201


@bp.route('/payments/<int:payment_id>', methods=['PUT'])
def update_payment(payment_id):
    payment = _get_or_404(Payment, payment_id)
    old_effect = _owed_effect(payment)
    form = _validated(PaymentForm, _payload(), base=payment.to_dict())
    data = _form_data(form)
    if data['employee_id'] != payment.employee_id:
        raise ValidationError("A payment cannot be moved to another employee")
    for name, value in data.items():
        setattr(payment, name, value)
    # Only a change of paid status or paid amount moves the employee balance
    payment.employee.current_balance += old_effect - _owed_effect(payment)
    db.session.commit()
    return jsonify(payment.to_dict())


@bp.route('/payments/<int:payment_id>', methods=['DELETE'])
def delete_payment(payment_id):
    payment = _get_or_404(Payment, payment_id)
    payment.employee.current_balance += _owed_effect(payment)
    db.session.delete(payment)
    db.session.commit()
    return jsonify({'deleted': True})

# --- Payroll ---

@bp.route('/payroll/employee/<int:employee_id>', methods=['GET'])
def employee_payroll(employee_id):
    start_date, end_date = _date_arg('start_date', required=True), _date_arg('end_date', required=True)
    return jsonify(calculate_employee_payroll(employee_id, start_date, end_date))


@bp.route('/payroll', methods=['GET'])
def all_payroll():
    start_date, end_date = _date_arg('start_date', required=True), _date_arg('end_date', required=True)
    results = calculate_all_employees_payroll(start_date, end_date)
    totals = {key: round(sum(r[key] for r in results), 2)
              for key in ('calculated_amount', 'paid_amount', 'unpaid_amount')}
    return jsonify({'start_date': start_date.isoformat(), 'end_date': end_date.isoformat(),
                    'employees': results, 'totals': totals})


@bp.route('/payroll/summary', methods=['GET'])
def payroll_summary():
    buffer_weeks = request.args.get('buffer_weeks', current_app.config['PAYROLL_BUFFER_WEEKS'], type=int)
    return jsonify(summarize_payroll_by_week(buffer_weeks, request.args.get('country_id', type=int)))

# --- Settings ---

@bp.route('/settings', methods=['GET'])
def list_settings():
    return jsonify(get_all_settings())


@bp.route('/settings', methods=['PUT'])
def update_settings():
    payload = _payload()
    known = set(PAYROLL_SETTING_DEFAULTS) | set(DISPLAY_SETTING_DEFAULTS)
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(unknown)}")

    for key, value in payload.items():
        form = _validated(AppSettingForm, {'value': value})
        setting = AppSetting.query.filter_by(key=key).first()
        if setting is None:
            setting = AppSetting(key=key, description=setting_description(key),
                                 value_type='float' if key in PAYROLL_SETTING_DEFAULTS else 'string')
            db.session.add(setting)
        setting.value = form.value.data
    db.session.commit()
    current_app.logger.info(f"Updated settings: {', '.join(sorted(payload))}")
    return jsonify(get_all_settings())

# --- Balances ---

@bp.route('/balances', methods=['GET'])
def list_balances():
    ledger.ensure_default_balances()
    balances = Balance.query.order_by(Balance.type.desc(), Balance.code).all()
    return jsonify([b.to_dict() for b in balances])


@bp.route('/balances', methods=['POST'])
def create_balance():
    form = _validated(BalanceForm, _payload())
    data = _form_data(form)
    data['code'] = data['code'].upper()
    data['current_amount'] = data['current_amount'] or 0
    data['currency'] = data['currency'] or 'USDT'
    if Balance.query.filter_by(code=data['code']).first():
        raise ConflictError(f"Balance code {data['code']} already exists")
    balance = Balance(is_active=True, **data)
    db.session.add(balance)
    db.session.commit()
    return jsonify(balance.to_dict()), 201


@bp.route('/balances/<int:balance_id>', methods=['PATCH'])
def patch_balance(balance_id):
    payload = _payload()
    balance = ledger.get_balance(balance_id)
    if 'name' in payload:
        balance.name = payload['name']
    if 'is_active' in payload:
        balance.is_active = bool(payload['is_active'])
    if 'current_amount' in payload:
        try:
            amount = float(payload['current_amount'])
        except (TypeError, ValueError):
            raise ValidationError("current_amount must be a number")
        balance = ledger.set_balance_amount(balance_id, amount)
    db.session.commit()
    return jsonify(balance.to_dict())

# --- Balance transactions ---

@bp.route('/balance-transactions', methods=['GET'])
def list_balance_transactions():
    rows, total = ledger.list_transactions(request.args.get('balance_id', type=int),
                                           _date_arg('start_date'), _date_arg('end_date'),
                                           request.args.get('limit', 50, type=int),
                                           request.args.get('offset', 0, type=int))
    return jsonify({'transactions': [t.to_dict() for t in rows], 'total': total})


@bp.route('/balance-transactions', methods=['POST'])
def create_balance_transaction():
    data = _form_data(_validated(BalanceTransactionForm, _payload()))
    transaction = ledger.create_transaction(data['balance_id'], data['type'], data['amount'],
                                            data['date'], data['description'])
    return jsonify(transaction.to_dict()), 201


def _manual_transaction(transaction_id):
    transaction = ledger.get_transaction(transaction_id)
    if transaction.expense_id is not None:
        raise ConflictError(f"Transaction {transaction_id} belongs to expense "
                            f"{transaction.expense_id}; edit the expense instead")
    return transaction


@bp.route('/balance-transactions/<int:transaction_id>', methods=['PUT'])
def update_balance_transaction(transaction_id):
    transaction = _manual_transaction(transaction_id)
    payload = _payload()
    form = _validated(BalanceTransactionForm, payload, base=transaction.to_dict())
    changes = _form_data(form, only=set(payload))
    transaction = ledger.update_transaction(transaction_id, **changes)
    return jsonify(transaction.to_dict())


@bp.route('/balance-transactions/<int:transaction_id>', methods=['DELETE'])
def delete_balance_transaction(transaction_id):
    _manual_transaction(transaction_id)
    ledger.delete_transaction(transaction_id)
    return jsonify({'deleted': True})

# --- Expenses ---

@bp.route('/expenses', methods=['GET'])
def list_expenses():
    expenses = expense_ledger.list_expenses(_date_arg('date'), _date_arg('start_date'), _date_arg('end_date'),
                                            request.args.get('country_id', type=int))
    return jsonify([e.to_dict() for e in expenses])


@bp.route('/expenses', methods=['POST'])
def create_expense():
    data = _form_data(_validated(ExpenseForm, _payload()))
    _require_country(data['country_id'])
    expense = expense_ledger.create_expense(data['date'], data['amount'], data['description'],
                                            data['category'] or 'other', data['country_id'],
                                            data['target_balance_code'])
    return jsonify(expense.to_dict()), 201


@bp.route('/expenses/<int:expense_id>', methods=['GET'])
def get_expense(expense_id):
    return jsonify(expense_ledger.get_expense(expense_id).to_dict())


@bp.route('/expenses/<int:expense_id>', methods=['PUT'])
def update_expense(expense_id):
    expense = expense_ledger.get_expense(expense_id)
    payload = _payload()
    form = _validated(ExpenseForm, payload, base=expense.to_dict())
    changes = _form_data(form, only=set(payload))
    _require_country(changes.get('country_id'))
    expense = expense_ledger.update_expense(expense_id, **changes)
    return jsonify(expense.to_dict())


@bp.route('/expenses/<int:expense_id>', methods=['DELETE'])
def delete_expense(expense_id):
    expense_ledger.delete_expense(expense_id)
    return jsonify({'deleted': True})

# --- Wallet ---

@bp.route('/wallet/sync', methods=['POST'])
def sync_wallet():
    transfers = _payload().get('transfers')
    if not isinstance(transfers, list):
        raise ValidationError("'transfers' must be a list")
    return jsonify(wallet_ledger.sync_wallet_transfers(transfers))


@bp.route('/wallet/transactions', methods=['GET'])
def list_wallet_transactions():
    processed = request.args.get('processed')
    rows, total = wallet_ledger.list_wallet_transactions(
        request.args.get('country_id', type=int), _date_arg('start_date'), _date_arg('end_date'),
        None if processed is None else str_to_bool(processed),
        max(request.args.get('page', 1, type=int), 1), request.args.get('limit', 50, type=int))
    return jsonify({'transactions': [t.to_dict() for t in rows], 'total': total})


@bp.route('/wallet/transactions/<int:wallet_tx_id>', methods=['PATCH'])
def patch_wallet_transaction(wallet_tx_id):
    payload = _payload()
    data = _form_data(_validated(WalletTransactionForm, payload))
    _require_country(data['country_id'])
    wallet_tx = wallet_ledger.assign_country(wallet_tx_id, data['country_id'],
                                             data['comment'] if 'comment' in payload else None)
    return jsonify(wallet_tx.to_dict())


@bp.route('/wallet/country-wallets', methods=['GET'])
def list_country_wallets():
    return jsonify([w.to_dict() for w in CountryWallet.query.order_by(CountryWallet.country_id).all()])


@bp.route('/wallet/country-wallets', methods=['POST'])
def create_country_wallet():
    data = _form_data(_validated(CountryWalletForm, _payload()))
    _require_country(data['country_id'])
    wallet = CountryWallet(is_active=True, **data)
    db.session.add(wallet)
    db.session.commit()
    return jsonify(wallet.to_dict()), 201


@bp.route('/wallet/country-wallets/<int:wallet_id>', methods=['DELETE'])
def delete_country_wallet(wallet_id):
    db.session.delete(_get_or_404(CountryWallet, wallet_id))
    db.session.commit()
    return jsonify({'deleted': True})


@bp.route('/wallet/agency-wallets', methods=['GET'])
def list_agency_wallets():
    return jsonify([w.to_dict() for w in AgencyWallet.query.order_by(AgencyWallet.balance_id).all()])


@bp.route('/wallet/agency-wallets', methods=['POST'])
def create_agency_wallet():
    data = _form_data(_validated(AgencyWalletForm, _payload()))
    balance = ledger.get_balance(data['balance_id'])
    if balance.type != 'agency':
        raise ValidationError(f"Balance {balance.code} is not an agency balance")
    wallet = AgencyWallet(is_active=True, **data)
    db.session.add(wallet)
    db.session.commit()
    return jsonify(wallet.to_dict()), 201


@bp.route('/wallet/agency-wallets/<int:wallet_id>', methods=['DELETE'])
def delete_agency_wallet(wallet_id):
    db.session.delete(_get_or_404(AgencyWallet, wallet_id))
    db.session.commit()
    return jsonify({'deleted': True})

# --- Spreadsheet import ---

@bp.route('/import', methods=['POST'])
def import_metrics():
    """Accepts an .xlsx or .csv upload of daily metrics and upserts every row."""
    if 'file' not in request.files:
        raise ValidationError("No file part in the request")
    file = request.files['file']
    if file.filename == '':
        raise ValidationError("No file selected")
    if not allowed_file(file.filename):
        raise ValidationError("File type not allowed. Upload an .xlsx or .csv file.")

    filename = secure_filename(file.filename)
    os.makedirs(current_app.config['UPLOAD_FOLDER'], exist_ok=True)
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], filename)
    file.save(filepath)

    dataframe, errors = validate_metrics_file(filepath)
    if errors:
        raise ValidationError("The uploaded file is invalid", details=errors)

    imported = import_metrics_dataframe(dataframe)
    current_app.logger.info(f"Imported {imported} rows from {filename}")
    return jsonify({'imported': imported, 'filename': filename})

# --- Dashboard ---

@bp.route('/dashboard', methods=['GET'])
def dashboard():
    start_date = _date_arg('start_date')
    end_date = _date_arg('end_date') or date.today()
    filter_zero_spend = str_to_bool(
        request.args.get('filter_zero_spend', get_all_settings().get('filterZeroSpend')))
    metrics = query_metrics(start_date, end_date, request.args.get('country_id', type=int), filter_zero_spend)
    data = prepare_dashboard_data(metrics)
    data.update({'start_date': start_date.isoformat() if start_date else None,
                 'end_date': end_date.isoformat(), 'filter_zero_spend': filter_zero_spend})
    return jsonify(data)
