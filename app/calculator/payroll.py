# ==============================================================================
# app/calculator/payroll.py
# ------------------------------------------------------------------------------
# Employee payroll engine: aggregates a period of daily metrics into the
# amount owed to one employee, according to the employee's role.
# ==============================================================================

import enum
import math
import logging
from datetime import date, timedelta

from app.calculator.metrics import calculate_payroll_fd_handler
from app.calculator.settings import PayrollSettings
from app.errors import NotFoundError, ValidationError
from app import db
from app.models import DailyMetrics, Employee, Payment


class EmployeeRole(enum.Enum):
    BUYER = 'buyer'
    RD_HANDLER = 'rd_handler'
    FD_HANDLER = 'fd_handler'
    CONTENT = 'content'
    DESIGNER = 'designer'
    HEAD_DESIGNER = 'head_designer'
    REVIEWER = 'reviewer'
    OTHER = 'other'

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown employee role: {value!r}")


def _override(value, default):
    return default if value is None else value


def _round2(value):
    # Half-up rounding
    return math.floor(value * 100 + 0.5) / 100


class _PeriodActivity:
    """Facts about a block of daily metrics that several role strategies share."""

    def __init__(self, metrics):
        self.metrics = metrics
        active = [m for m in metrics if m.total_spend > 0]
        self.days_with_activity = len({m.date for m in active})
        self.active_projects = len({m.country_id for m in active}) or 1

    def total(self, column):
        return sum(getattr(m, column) for m in self.metrics)


# --- Role strategies ---
# Each returns (amount, [detail, ...]); a detail is {metric, value, rate, amount}.

def _percent_of(metric_label, column, setting_attr):
    def strategy(employee, activity, settings):
        base = activity.total(column)
        rate = _override(employee.percent_rate, getattr(settings, setting_attr))
        amount = base * (rate / 100)
        return amount, [{'metric': metric_label, 'value': base, 'rate': rate, 'amount': amount}]
    return strategy


def _fd_handler(employee, activity, settings):
    fd_count = activity.total('fd_count')
    tiers = {
        'fd_tier1_rate': _override(employee.fd_tier1_rate, settings.fd_tier1_rate),
        'fd_tier2_rate': _override(employee.fd_tier2_rate, settings.fd_tier2_rate),
        'fd_tier3_rate': _override(employee.fd_tier3_rate, settings.fd_tier3_rate),
        'fd_bonus_threshold': _override(employee.fd_bonus_threshold, settings.fd_bonus_threshold),
        'fd_bonus': _override(employee.fd_bonus, settings.fd_bonus),
        'fd_multiplier': settings.fd_multiplier,
    }
    amount = calculate_payroll_fd_handler(fd_count, tiers)
    if fd_count >= 10:
        rate = tiers['fd_tier3_rate']
    elif fd_count >= tiers['fd_bonus_threshold']:
        rate = tiers['fd_tier2_rate']
    else:
        rate = tiers['fd_tier1_rate']
    return amount, [{'metric': 'FD count', 'value': fd_count, 'rate': rate, 'amount': amount}]


def _per_project_day(setting_attr):
    def strategy(employee, activity, settings):
        rate = _override(employee.fixed_rate, getattr(settings, setting_attr))
        units = activity.days_with_activity * activity.active_projects
        amount = activity.days_with_activity * rate * activity.active_projects
        return amount, [{'metric': 'Active days x projects', 'value': units, 'rate': rate, 'amount': amount}]
    return strategy


def _head_designer(employee, activity, settings):
    rate = _override(employee.fixed_rate, settings.head_designer_fixed)
    amount = activity.days_with_activity * rate
    return amount, [{'metric': 'Active days', 'value': activity.days_with_activity, 'rate': rate, 'amount': amount}]


def _fixed_daily(employee, activity, settings):
    if not employee.fixed_rate:
        return 0, []
    amount = activity.days_with_activity * employee.fixed_rate
    return amount, [{'metric': 'Active days (fixed)', 'value': activity.days_with_activity,
                     'rate': employee.fixed_rate, 'amount': amount}]


ROLE_STRATEGIES = {
    EmployeeRole.BUYER: _percent_of('Spend', 'total_spend', 'buyer_rate'),
    EmployeeRole.RD_HANDLER: _percent_of('RD sum', 'rd_sum_usdt', 'rd_handler_rate'),
    EmployeeRole.FD_HANDLER: _fd_handler,
    EmployeeRole.CONTENT: _per_project_day('content_fixed_rate'),
    EmployeeRole.DESIGNER: _per_project_day('designer_fixed_rate'),
    EmployeeRole.REVIEWER: _per_project_day('reviewer_fixed_rate'),
    EmployeeRole.HEAD_DESIGNER: _head_designer,
    EmployeeRole.OTHER: _fixed_daily,
}

_unpriced_roles = set(EmployeeRole) - set(ROLE_STRATEGIES)
if _unpriced_roles:
    raise RuntimeError(f"No payroll strategy for roles: {sorted(r.value for r in _unpriced_roles)}")


def calculate_employee_payroll(employee_id, start_date, end_date, settings=None):
    """
    Calculates what one employee has earned, been paid and is still owed over
    an inclusive date range.

    Args:
        employee_id (int): The employee to calculate.
        start_date (date): First day of the period.
        end_date (date): Last day of the period.
        settings (PayrollSettings, optional): Pre-loaded settings; loaded from
            the database when omitted.

    Returns:
        dict: employee_id, employee_name, role, calculated_amount, paid_amount,
            unpaid_amount, active_projects and the details breakdown.

    Raises:
        NotFoundError: If the employee does not exist.
    """
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError.for_resource('Employee', employee_id)

    settings = settings or PayrollSettings.load()
    role = EmployeeRole.parse(employee.role)

    metrics_query = DailyMetrics.query.filter(DailyMetrics.date >= start_date,
                                              DailyMetrics.date <= end_date)
    if employee.country_id:
        metrics_query = metrics_query.filter(DailyMetrics.country_id == employee.country_id)
    activity = _PeriodActivity(metrics_query.all())

    payments = Payment.query.filter(Payment.employee_id == employee.id,
                                    Payment.payment_date >= start_date,
                                    Payment.payment_date <= end_date,
                                    Payment.status == 'paid').all()
    paid_amount = sum(p.amount for p in payments)

    calculated_amount, details = ROLE_STRATEGIES[role](employee, activity, settings)

    logging.info(f"Payroll for {employee.name} ({role.value}) {start_date}..{end_date}: "
                 f"calculated={calculated_amount:,.2f} paid={paid_amount:,.2f} "
                 f"over {len(activity.metrics)} daily rows")

    return {
        'employee_id': employee.id,
        'employee_name': employee.name,
        'role': role.value,
        'calculated_amount': _round2(calculated_amount),
        'paid_amount': _round2(paid_amount),
        'unpaid_amount': _round2(calculated_amount - paid_amount),
        'active_projects': activity.active_projects,
        'details': details,
    }


def calculate_all_employees_payroll(start_date, end_date):
    """Runs the engine for every active employee with one shared settings load."""
    settings = PayrollSettings.load()
    employees = Employee.query.filter_by(is_active=True).order_by(Employee.role, Employee.name).all()
    return [calculate_employee_payroll(e.id, start_date, end_date, settings) for e in employees]


def _week_start(day):
    return day - timedelta(days=day.weekday())


def summarize_payroll_by_week(buffer_weeks=1, country_id=None, today=None):
    """
    Groups daily payroll into Monday-based weeks. A week is payable once it
    ended before the buffer cutoff; later weeks are still held back.

    Returns:
        dict: totals, weeks (newest first), countries, buffer_weeks, cutoff_date.
    """
    today = today or date.today()
    cutoff = today - timedelta(weeks=buffer_weeks)

    query = DailyMetrics.query.filter(DailyMetrics.total_payroll > 0)
    if country_id:
        query = query.filter(DailyMetrics.country_id == country_id)
    metrics = query.order_by(DailyMetrics.date.desc()).all()

    weeks = {}
    countries = {}
    for m in metrics:
        start = _week_start(m.date)
        week = weeks.setdefault(start, {
            'week_start': start.isoformat(),
            'week_end': (start + timedelta(days=6)).isoformat(),
            'total_payroll': 0, 'is_payable': start + timedelta(days=6) < cutoff,
            'countries': set(), 'days': 0,
        })
        week['total_payroll'] += m.total_payroll
        week['countries'].add(m.country.code)
        week['days'] += 1

        country = countries.setdefault(m.country.code, {
            'name': m.country.name, 'code': m.country.code, 'total_payroll': 0})
        country['total_payroll'] += m.total_payroll

    week_list = []
    for start in sorted(weeks, reverse=True):
        week = weeks[start]
        week['total_payroll'] = _round2(week['total_payroll'])
        week['countries'] = sorted(week['countries'])
        week_list.append(week)

    for country in countries.values():
        country['total_payroll'] = _round2(country['total_payroll'])

    totals = {
        'total_payroll': _round2(sum(w['total_payroll'] for w in week_list)),
        'payable_now': _round2(sum(w['total_payroll'] for w in week_list if w['is_payable'])),
        'buffer_amount': _round2(sum(w['total_payroll'] for w in week_list if not w['is_payable'])),
    }
    return {
        'totals': totals,
        'weeks': week_list,
        'countries': list(countries.values()),
        'buffer_weeks': buffer_weeks,
        'cutoff_date': cutoff.isoformat(),
    }
