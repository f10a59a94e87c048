# ==============================================================================
# app/main/utils.py
# ------------------------------------------------------------------------------
# Dashboard aggregation over stored daily metrics.
# ==============================================================================
import pandas as pd

from app.calculator.metrics import calculate_roi
from app.models import DailyMetrics

SUMMARY_COLUMNS = ['total_revenue_usdt', 'total_expenses_usdt', 'total_spend',
                   'expenses_without_spend', 'total_payroll', 'agency_fee',
                   'commission_priemka', 'fd_count', 'net_profit_math']


def str_to_bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def query_metrics(start_date=None, end_date=None, country_id=None, filter_zero_spend=False):
    query = DailyMetrics.query
    if start_date:
        query = query.filter(DailyMetrics.date >= start_date)
    if end_date:
        query = query.filter(DailyMetrics.date <= end_date)
    if country_id:
        query = query.filter(DailyMetrics.country_id == country_id)
    if filter_zero_spend:
        query = query.filter(DailyMetrics.total_spend > 0)
    return query.order_by(DailyMetrics.date.desc(), DailyMetrics.country_id).all()


def _totals(frame):
    """Sums the summary columns of a frame and derives profit and ROI from the sums."""
    totals = {col: float(frame[col].sum()) if not frame.empty else 0.0 for col in SUMMARY_COLUMNS}
    totals['fd_count'] = int(totals['fd_count'])
    totals['roi'] = calculate_roi(totals['total_revenue_usdt'], totals['total_expenses_usdt'])
    return totals


def prepare_dashboard_data(metrics):
    """
    Transforms daily rows into the dashboard payload: overall totals, one
    summary per country and a per-day series for charts.
    """
    frame = pd.DataFrame([
        {'date': m.date.isoformat(), 'country_code': m.country.code, 'country_name': m.country.name,
         **{col: getattr(m, col) for col in SUMMARY_COLUMNS}}
        for m in metrics
    ], columns=['date', 'country_code', 'country_name'] + SUMMARY_COLUMNS)

    countries = []
    for (code, name), group in frame.groupby(['country_code', 'country_name'], sort=True):
        countries.append({'code': code, 'name': name, 'days': len(group), **_totals(group)})

    daily = []
    for day, group in frame.groupby('date', sort=True):
        totals = _totals(group)
        daily.append({'date': day, 'revenue': totals['total_revenue_usdt'],
                      'expenses': totals['total_expenses_usdt'], 'spend': totals['total_spend'],
                      'profit': totals['net_profit_math'], 'roi': totals['roi']})

    return {
        'totals': _totals(frame),
        'countries': countries,
        'daily': daily,
        'row_count': len(frame),
    }
