# ==============================================================================
# app/calculator/daily.py
# ------------------------------------------------------------------------------
# Persists DailyMetrics rows. Every write goes through apply_inputs(), which
# re-runs the whole calculator so derived columns never drift from raw ones.
# ==============================================================================

import logging

from app import db
from app.calculator.metrics import calculate_all_metrics, format_currency, format_percent
from app.errors import ConflictError, NotFoundError
from app.models import Country, CountrySettings, DailyMetrics


# Left unset on a new row so the calculator can fill in the country default
COUNTRY_DEFAULTED_FIELDS = ('payroll_head_designer', 'chatterfy_cost')


def _blank_row(day, country_id):
    row = DailyMetrics(date=day, country_id=country_id)
    for field in DailyMetrics.RAW_FIELDS + DailyMetrics.FACT_FIELDS:
        if field not in COUNTRY_DEFAULTED_FIELDS:
            setattr(row, field, 0)
    return row


def _country_settings(country_id):
    settings = CountrySettings.query.filter_by(country_id=country_id).first()
    return settings.as_calculation_settings() if settings else {}


def apply_inputs(row, inputs):
    """
    Merges raw inputs into a row and recomputes every derived column.

    Args:
        row (DailyMetrics): The row to update in place.
        inputs (dict): Raw and fact fields to overwrite; unknown keys are ignored.
    """
    for field in DailyMetrics.RAW_FIELDS + DailyMetrics.FACT_FIELDS:
        if field in inputs and inputs[field] is not None:
            setattr(row, field, inputs[field])

    calculated = calculate_all_metrics(row.raw_inputs(), _country_settings(row.country_id))
    for field, value in calculated.items():
        setattr(row, field, value)

    logging.debug(f"Recomputed {row.date} country={row.country_id}: "
                  f"revenue={format_currency(row.total_revenue_usdt)} "
                  f"expenses={format_currency(row.total_expenses_usdt)} roi={format_percent(row.roi)}")
    return row


def _require_country(country_id):
    if db.session.get(Country, country_id) is None:
        raise NotFoundError.for_resource('Country', country_id)


def create_daily_metrics(day, country_id, inputs):
    """Creates the row for (day, country). Raises ConflictError if it already exists."""
    _require_country(country_id)
    if DailyMetrics.query.filter_by(date=day, country_id=country_id).first():
        raise ConflictError(f"Metrics for country {country_id} on {day} already exist")

    row = _blank_row(day, country_id)
    apply_inputs(row, inputs)
    db.session.add(row)
    db.session.commit()
    logging.info(f"Created daily metrics {day} country={country_id}, net profit {row.net_profit_math:,.2f}")
    return row


def update_daily_metrics(metrics_id, inputs):
    row = db.session.get(DailyMetrics, metrics_id)
    if row is None:
        raise NotFoundError.for_resource('DailyMetrics', metrics_id)
    apply_inputs(row, inputs)
    db.session.commit()
    logging.info(f"Updated daily metrics {row.date} country={row.country_id}")
    return row


def upsert_daily_metrics(day, country_id, inputs, commit=True):
    """Creates or updates the (day, country) row. The caller may own the commit."""
    row = DailyMetrics.query.filter_by(date=day, country_id=country_id).first()
    if row is None:
        row = _blank_row(day, country_id)
    # Added after the calculation; an autoflush would store 0 in the unset fields
    apply_inputs(row, inputs)
    db.session.add(row)
    if commit:
        db.session.commit()
    return row


def add_own_revenue(day, country_id, amount_usdt):
    """Adds received USDT to a day's own revenue and recomputes the row. Does not commit."""
    row = DailyMetrics.query.filter_by(date=day, country_id=country_id).first()
    current = row.revenue_usdt_own if row else 0
    return upsert_daily_metrics(day, country_id, {'revenue_usdt_own': current + amount_usdt}, commit=False)


def delete_daily_metrics(metrics_id):
    row = db.session.get(DailyMetrics, metrics_id)
    if row is None:
        raise NotFoundError.for_resource('DailyMetrics', metrics_id)
    db.session.delete(row)
    db.session.commit()


def recalculate_all():
    """Re-runs the calculator for every stored row. Returns the row count."""
    count = 0
    for row in DailyMetrics.query.order_by(DailyMetrics.date).all():
        apply_inputs(row, {})
        count += 1
    db.session.commit()
    return count
