# ==============================================================================
# app/calculator/metrics.py
# ------------------------------------------------------------------------------
# Pure daily metric calculations. Nothing in this module touches the database
# and nothing raises: every division guard degrades to 0.
#
# Historical figures depend on these constants and tier boundaries, change
# them only together with a recalculation of the stored rows.
# ==============================================================================

AGENCY_FEE_TRUST = 0.09
AGENCY_FEE_CROSSGIF = 0.08
AGENCY_FEE_FBM = 0.08

PRIEMKA_COMMISSION_RATE = 0.15
BUYER_PAYROLL_RATE = 0.12
RD_HANDLER_RATE = 0.04

FD_TIER1_RATE = 3
FD_TIER2_RATE = 4
FD_TIER3_RATE = 5
FD_TIER3_THRESHOLD = 10
FD_BONUS_THRESHOLD = 5
FD_BONUS = 15
FD_MULTIPLIER = 1.2

# Buyer desk payroll, a flat share of the effective spend
BUYER_METRICS_PAYROLL_RATE = 0.10

RAW_INPUT_DEFAULTS = {
    'spend_trust': 0.0,
    'spend_crossgif': 0.0,
    'spend_fbm': 0.0,
    'revenue_local_priemka': 0.0,
    'revenue_usdt_priemka': 0.0,
    'revenue_local_own': 0.0,
    'revenue_usdt_own': 0.0,
    'fd_count': 0,
    'fd_sum_local': 0.0,
}

# Manual inputs that may be omitted. None means "not entered".
OPTIONAL_INPUTS = (
    'payroll_content', 'payroll_reviews', 'payroll_designer', 'payroll_head_designer',
    'chatterfy_cost', 'additional_expenses',
)


def calculate_total_spend(spend_trust, spend_crossgif, spend_fbm):
    return spend_trust + spend_crossgif + spend_fbm


def calculate_agency_fee(spend_trust, spend_crossgif, spend_fbm):
    """Agency commission: TRUST 9%, CROSSGIF and FBM 8%."""
    return spend_trust * AGENCY_FEE_TRUST + spend_crossgif * AGENCY_FEE_CROSSGIF + spend_fbm * AGENCY_FEE_FBM


def calculate_exchange_rate(local, usdt):
    """Local currency units per USDT, 0 when no USDT was received."""
    return local / usdt if usdt > 0 else 0


def calculate_priemka_commission(revenue_usdt_priemka, rate=PRIEMKA_COMMISSION_RATE):
    return revenue_usdt_priemka * rate


def calculate_total_revenue(revenue_usdt_priemka, revenue_usdt_own):
    return revenue_usdt_priemka + revenue_usdt_own


def calculate_fd_sum_usdt(fd_sum_local, exchange_rate_own):
    return fd_sum_local / exchange_rate_own if exchange_rate_own > 0 else 0


def calculate_rd_sum(revenue_local_own, fd_sum_local):
    """RD is the residual of own revenue after FD. It is allowed to go negative."""
    return revenue_local_own - fd_sum_local


def calculate_payroll_rd_handler(rd_sum_usdt, rate=RD_HANDLER_RATE):
    return rd_sum_usdt * rate


def calculate_payroll_fd_handler(fd_count, settings=None):
    """
    Tiered FD handler pay:
        (fd_count * rate + bonus) * multiplier
    where rate is tier 1 below the bonus threshold, tier 2 below 10 and tier 3
    from 10 on, and the flat bonus applies from the bonus threshold on.

    Args:
        fd_count (int): Number of first deposits.
        settings (dict, optional): Overrides for fd_tier1_rate, fd_tier2_rate,
            fd_tier3_rate, fd_bonus_threshold, fd_bonus and fd_multiplier.

    Returns:
        float: The payroll amount.
    """
    settings = settings or {}
    tier1_rate = _setting(settings, 'fd_tier1_rate', FD_TIER1_RATE)
    tier2_rate = _setting(settings, 'fd_tier2_rate', FD_TIER2_RATE)
    tier3_rate = _setting(settings, 'fd_tier3_rate', FD_TIER3_RATE)
    bonus_threshold = _setting(settings, 'fd_bonus_threshold', FD_BONUS_THRESHOLD)
    bonus = _setting(settings, 'fd_bonus', FD_BONUS)
    multiplier = _setting(settings, 'fd_multiplier', FD_MULTIPLIER)

    if fd_count < bonus_threshold:
        rate = tier1_rate
    elif fd_count < FD_TIER3_THRESHOLD:
        rate = tier2_rate
    else:
        rate = tier3_rate

    bonus_amount = bonus if fd_count >= bonus_threshold else 0
    return (fd_count * rate + bonus_amount) * multiplier


def calculate_payroll_buyer(total_spend, rate=BUYER_PAYROLL_RATE):
    return total_spend * rate


def calculate_roi(total_revenue, total_expenses):
    return (total_revenue - total_expenses) / total_expenses if total_expenses > 0 else 0


def _setting(settings, key, default):
    value = settings.get(key)
    return default if value is None else value


def _optional(inputs, key, default=0):
    value = inputs.get(key)
    return default if value is None else value


def calculate_all_metrics(inputs, country_settings=None):
    """
    Computes every derived daily figure from the raw inputs.

    Args:
        inputs (dict): Raw daily inputs. Missing raw keys count as 0; the
            optional manual keys (payroll_*, chatterfy_cost,
            additional_expenses) default to 0 unless a country default exists.
        country_settings (dict, optional): Per-country overrides, see
            CountrySettings.as_calculation_settings().

    Returns:
        dict: The calculated metrics, keyed like the DailyMetrics columns.
    """
    settings = country_settings or {}
    raw = dict(RAW_INPUT_DEFAULTS)
    raw.update({k: v for k, v in inputs.items() if k in RAW_INPUT_DEFAULTS and v is not None})

    total_spend = calculate_total_spend(raw['spend_trust'], raw['spend_crossgif'], raw['spend_fbm'])
    agency_fee = calculate_agency_fee(raw['spend_trust'], raw['spend_crossgif'], raw['spend_fbm'])

    exchange_rate_priemka = calculate_exchange_rate(raw['revenue_local_priemka'], raw['revenue_usdt_priemka'])
    exchange_rate_own = calculate_exchange_rate(raw['revenue_local_own'], raw['revenue_usdt_own'])

    commission_priemka = calculate_priemka_commission(
        raw['revenue_usdt_priemka'],
        _setting(settings, 'priemka_commission_rate', PRIEMKA_COMMISSION_RATE),
    )
    total_revenue_usdt = calculate_total_revenue(raw['revenue_usdt_priemka'], raw['revenue_usdt_own'])

    fd_sum_usdt = calculate_fd_sum_usdt(raw['fd_sum_local'], exchange_rate_own)
    rd_sum_local = calculate_rd_sum(raw['revenue_local_own'], raw['fd_sum_local'])
    rd_sum_usdt = rd_sum_local / exchange_rate_own if exchange_rate_own > 0 else 0

    payroll_rd_handler = calculate_payroll_rd_handler(
        rd_sum_usdt, _setting(settings, 'rd_handler_rate', RD_HANDLER_RATE))
    payroll_fd_handler = calculate_payroll_fd_handler(raw['fd_count'], settings)
    payroll_buyer = calculate_payroll_buyer(
        total_spend, _setting(settings, 'buyer_payroll_rate', BUYER_PAYROLL_RATE))

    payroll_content = _optional(inputs, 'payroll_content')
    payroll_reviews = _optional(inputs, 'payroll_reviews')
    payroll_designer = _optional(inputs, 'payroll_designer')
    # Head designer pay is only implied when the country configures a fixed amount
    payroll_head_designer = _optional(inputs, 'payroll_head_designer',
                                      _setting(settings, 'head_designer_fixed', 0))

    total_payroll = (payroll_rd_handler + payroll_fd_handler + payroll_buyer +
                     payroll_content + payroll_reviews + payroll_designer + payroll_head_designer)

    chatterfy_cost = _optional(inputs, 'chatterfy_cost', _setting(settings, 'chatterfy_cost_default', 0))
    additional_expenses = _optional(inputs, 'additional_expenses')

    total_expenses_usdt = (commission_priemka + total_spend + agency_fee + total_payroll +
                           chatterfy_cost + additional_expenses)
    expenses_without_spend = total_expenses_usdt - total_spend

    net_profit_math = total_revenue_usdt - total_expenses_usdt
    roi = calculate_roi(total_revenue_usdt, total_expenses_usdt)

    return {
        'total_spend': total_spend,
        'agency_fee': agency_fee,
        'exchange_rate_priemka': exchange_rate_priemka,
        'exchange_rate_own': exchange_rate_own,
        'commission_priemka': commission_priemka,
        'total_revenue_usdt': total_revenue_usdt,
        'fd_sum_usdt': fd_sum_usdt,
        'rd_sum_local': rd_sum_local,
        'rd_sum_usdt': rd_sum_usdt,
        'payroll_rd_handler': payroll_rd_handler,
        'payroll_fd_handler': payroll_fd_handler,
        'payroll_buyer': payroll_buyer,
        'payroll_content': payroll_content,
        'payroll_reviews': payroll_reviews,
        'payroll_designer': payroll_designer,
        'payroll_head_designer': payroll_head_designer,
        'total_payroll': total_payroll,
        'chatterfy_cost': chatterfy_cost,
        'additional_expenses': additional_expenses,
        'total_expenses_usdt': total_expenses_usdt,
        'expenses_without_spend': expenses_without_spend,
        'net_profit_math': net_profit_math,
        'roi': roi,
    }


def calculate_cost_per(spend, count):
    """Spend per unit (subscription or FD), 0 when nothing was counted."""
    return spend / count if count > 0 else 0


def calculate_conversion_rate(dialogs, subscriptions):
    """Dialogs per subscription as a percentage, 0 without subscriptions."""
    return dialogs / subscriptions * 100 if subscriptions > 0 else 0


def effective_spend(spend, spend_manual):
    # A manual figure replaces the collected spend unless it is empty or 0
    return spend_manual if spend_manual else (spend or 0)


def calculate_buyer_metrics(inputs, payroll_rate=BUYER_METRICS_PAYROLL_RATE):
    """
    Computes the derived figures of one buyer desk day.

    Args:
        inputs (dict): spend, spend_manual, subscriptions, dialogs and
            fd_count. Missing or None values count as 0.
        payroll_rate (float): Share of the effective spend paid to the buyer.

    Returns:
        dict: cost_per_subscription, cost_per_fd, conversion_rate and
            payroll_amount.
    """
    spend = effective_spend(inputs.get('spend'), inputs.get('spend_manual'))
    subscriptions = _optional(inputs, 'subscriptions')
    fd_count = _optional(inputs, 'fd_count')
    return {
        'cost_per_subscription': calculate_cost_per(spend, subscriptions),
        'cost_per_fd': calculate_cost_per(spend, fd_count),
        'conversion_rate': calculate_conversion_rate(_optional(inputs, 'dialogs'), subscriptions),
        'payroll_amount': spend * payroll_rate,
    }


def format_currency(value, currency='USDT'):
    return f"{value:.2f} {currency}"


def format_percent(value):
    return f"{value * 100:.2f}%"
