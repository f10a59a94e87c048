# ==============================================================================
# app/calculator/buying.py
# ------------------------------------------------------------------------------
# Persists per-buyer desk results (BuyerMetrics) and aggregates them for the
# buying summary. Derived columns are recomputed on every write.
# ==============================================================================

import logging

import pandas as pd

from app import db
from app.calculator.metrics import (calculate_buyer_metrics, calculate_conversion_rate, calculate_cost_per,
                                    effective_spend)
from app.errors import ConflictError, NotFoundError
from app.models import BuyerMetrics, Country, Employee

SUM_COLUMNS = ['spend', 'subscriptions', 'dialogs', 'fd_count', 'payroll_amount']
COUNT_COLUMNS = ('subscriptions', 'dialogs', 'fd_count')
DETAIL_FIELDS = ('desk_name', 'platform_name', 'notes')


def _recompute(row):
    calculated = calculate_buyer_metrics({f: getattr(row, f) for f in BuyerMetrics.INPUT_FIELDS})
    for field, value in calculated.items():
        setattr(row, field, value)
    return row


def _check_references(country_id, employee_id):
    if db.session.get(Country, country_id) is None:
        raise NotFoundError.for_resource('Country', country_id)
    if employee_id is not None and db.session.get(Employee, employee_id) is None:
        raise NotFoundError.for_resource('Employee', employee_id)


def _check_unique(day, employee_id, country_id, exclude_id=None):
    query = BuyerMetrics.query.filter_by(date=day, employee_id=employee_id, country_id=country_id)
    if exclude_id is not None:
        query = query.filter(BuyerMetrics.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Buyer metrics for employee {employee_id} in country {country_id} "
                            f"on {day} already exist")


def create_buyer_metrics(day, country_id, employee_id=None, **fields):
    """
    Records a buyer's day and derives its cost, conversion and payroll figures.

    Args:
        day (date): The day the results belong to.
        country_id (int): The country the desk buys traffic for.
        employee_id (int | None): The buyer, if known.
        **fields: Any of spend, spend_manual, subscriptions, dialogs, fd_count,
            desk_name, platform_name, notes.
    """
    _check_references(country_id, employee_id)
    _check_unique(day, employee_id, country_id)

    row = BuyerMetrics(date=day, country_id=country_id, employee_id=employee_id)
    for field in BuyerMetrics.INPUT_FIELDS:
        value = fields.get(field)
        setattr(row, field, value if value is not None or field == 'spend_manual' else 0)
    for field in DETAIL_FIELDS:
        setattr(row, field, fields.get(field))
    _recompute(row)
    db.session.add(row)
    db.session.commit()
    logging.info(f"Created buyer metrics {day} employee={employee_id} country={country_id}, "
                 f"payroll {row.payroll_amount:,.2f}")
    return row


def get_buyer_metrics(metrics_id):
    row = db.session.get(BuyerMetrics, metrics_id)
    if row is None:
        raise NotFoundError.for_resource('BuyerMetrics', metrics_id)
    return row


def update_buyer_metrics(metrics_id, **changes):
    """Applies changes to a stored day. A None clears spend_manual and zeroes counters."""
    row = get_buyer_metrics(metrics_id)
    day = changes.get('date') or row.date
    country_id = changes.get('country_id') or row.country_id
    employee_id = changes['employee_id'] if 'employee_id' in changes else row.employee_id
    _check_references(country_id, employee_id)
    _check_unique(day, employee_id, country_id, exclude_id=row.id)

    row.date, row.country_id, row.employee_id = day, country_id, employee_id
    for field in BuyerMetrics.INPUT_FIELDS:
        if field in changes:
            value = changes[field]
            setattr(row, field, value if value is not None or field == 'spend_manual' else 0)
    for field in DETAIL_FIELDS:
        if field in changes:
            setattr(row, field, changes[field])
    _recompute(row)
    db.session.commit()
    logging.info(f"Updated buyer metrics {row.id}")
    return row


def delete_buyer_metrics(metrics_id):
    db.session.delete(get_buyer_metrics(metrics_id))
    db.session.commit()


def list_buyer_metrics(start_date=None, end_date=None, country_id=None, employee_id=None):
    query = BuyerMetrics.query
    if start_date:
        query = query.filter(BuyerMetrics.date >= start_date)
    if end_date:
        query = query.filter(BuyerMetrics.date <= end_date)
    if country_id:
        query = query.filter(BuyerMetrics.country_id == country_id)
    if employee_id:
        query = query.filter(BuyerMetrics.employee_id == employee_id)
    return query.order_by(BuyerMetrics.date.desc(), BuyerMetrics.desk_name).all()


def _totals(frame):
    """Sums a frame and derives the ratios from the sums, not from per-row averages."""
    totals = {col: float(frame[col].sum()) if not frame.empty else 0.0 for col in SUM_COLUMNS}
    for col in COUNT_COLUMNS:
        totals[col] = int(totals[col])
    totals['cost_per_subscription'] = calculate_cost_per(totals['spend'], totals['subscriptions'])
    totals['cost_per_fd'] = calculate_cost_per(totals['spend'], totals['fd_count'])
    totals['conversion_rate'] = calculate_conversion_rate(totals['dialogs'], totals['subscriptions'])
    totals['record_count'] = len(frame)
    return totals


def summarize_buyer_metrics(rows):
    """
    Aggregates buyer days into overall totals plus one summary per country and
    per buyer. Spend is the effective spend (manual figure when entered).
    """
    frame = pd.DataFrame([
        {'country_id': r.country_id, 'country_name': r.country.name,
         # 0 stands in for days without a buyer so groupby keeps them
         'employee_id': r.employee_id or 0,
         'employee_name': r.employee.name if r.employee else 'Unassigned',
         'spend': effective_spend(r.spend, r.spend_manual),
         **{col: getattr(r, col) for col in SUM_COLUMNS if col != 'spend'}}
        for r in rows
    ], columns=['country_id', 'country_name', 'employee_id', 'employee_name'] + SUM_COLUMNS)

    by_country = [
        {'country_id': int(country_id), 'country_name': name, **_totals(group)}
        for (country_id, name), group in frame.groupby(['country_id', 'country_name'], sort=True)
    ]
    by_buyer = [
        {'employee_id': int(employee_id) or None, 'employee_name': name, **_totals(group)}
        for (employee_id, name), group in frame.groupby(['employee_id', 'employee_name'], sort=True)
    ]
    return {'totals': _totals(frame), 'by_country': by_country, 'by_buyer': by_buyer}
