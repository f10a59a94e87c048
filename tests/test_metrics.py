# tests/test_metrics.py

import pytest

from app.calculator.metrics import (calculate_agency_fee, calculate_all_metrics, calculate_exchange_rate,
                                    calculate_payroll_fd_handler, calculate_roi, format_currency,
                                    format_percent)


def test_agency_fee_uses_per_agency_rates():
    assert calculate_agency_fee(100, 200, 300) == pytest.approx(9 + 16 + 24)
    assert calculate_agency_fee(0, 0, 0) == 0


def test_exchange_rate_is_zero_without_usdt():
    assert calculate_exchange_rate(5000, 0) == 0
    assert calculate_exchange_rate(4100, 100) == pytest.approx(41)


@pytest.mark.parametrize('fd_count, expected', [
    (0, 0),
    (4, 14.4),   # tier 1, no bonus
    (5, 42.0),   # tier 2 + bonus
    (9, 61.2),
    (10, 78.0),  # tier 3 + bonus
])
def test_fd_handler_payroll_tiers(fd_count, expected):
    assert calculate_payroll_fd_handler(fd_count) == pytest.approx(expected)


def test_fd_handler_payroll_with_overrides():
    settings = {'fd_tier1_rate': 2, 'fd_bonus_threshold': 3, 'fd_bonus': 10, 'fd_multiplier': 1}
    assert calculate_payroll_fd_handler(2, settings) == pytest.approx(4)
    assert calculate_payroll_fd_handler(3, settings) == pytest.approx(3 * 4 + 10)


def test_roi_is_zero_without_expenses():
    assert calculate_roi(100, 0) == 0
    assert calculate_roi(150, 100) == pytest.approx(0.5)


def test_daily_scenario():
    result = calculate_all_metrics({'spend_trust': 100, 'revenue_usdt_priemka': 200})

    assert result['total_spend'] == pytest.approx(100)
    assert result['agency_fee'] == pytest.approx(9)
    assert result['commission_priemka'] == pytest.approx(30)
    assert result['total_revenue_usdt'] == pytest.approx(200)
    assert result['payroll_buyer'] == pytest.approx(12)
    assert result['total_payroll'] == pytest.approx(12)
    assert result['total_expenses_usdt'] == pytest.approx(151)
    assert result['expenses_without_spend'] == pytest.approx(51)
    assert result['net_profit_math'] == pytest.approx(49)
    assert result['roi'] == pytest.approx(49 / 151)


def test_empty_inputs_produce_zeroes():
    result = calculate_all_metrics({})
    assert all(value == 0 for value in result.values())


def test_net_profit_is_revenue_minus_expenses():
    inputs = {
        'spend_trust': 120.5, 'spend_crossgif': 80, 'spend_fbm': 33.3,
        'revenue_local_priemka': 41000, 'revenue_usdt_priemka': 1000,
        'revenue_local_own': 82000, 'revenue_usdt_own': 2000,
        'fd_count': 7, 'fd_sum_local': 12300,
        'payroll_content': 15, 'payroll_designer': 20, 'chatterfy_cost': 3,
        'additional_expenses': 11,
    }
    result = calculate_all_metrics(inputs)
    assert result['net_profit_math'] == pytest.approx(result['total_revenue_usdt'] - result['total_expenses_usdt'])
    assert result['exchange_rate_own'] == pytest.approx(41)
    assert result['fd_sum_usdt'] == pytest.approx(300)


def test_negative_rd_is_preserved():
    result = calculate_all_metrics({'revenue_local_own': 1000, 'revenue_usdt_own': 25, 'fd_sum_local': 1500})
    assert result['rd_sum_local'] == pytest.approx(-500)
    assert result['rd_sum_usdt'] == pytest.approx(-12.5)
    assert result['payroll_rd_handler'] == pytest.approx(-0.5)


def test_country_overrides_replace_constants():
    settings = {'priemka_commission_rate': 0.1, 'buyer_payroll_rate': 0.2,
                'head_designer_fixed': 10, 'chatterfy_cost_default': 5}
    result = calculate_all_metrics({'spend_trust': 100, 'revenue_usdt_priemka': 200}, settings)
    assert result['commission_priemka'] == pytest.approx(20)
    assert result['payroll_buyer'] == pytest.approx(20)
    assert result['payroll_head_designer'] == 10
    assert result['chatterfy_cost'] == 5


def test_entered_manual_values_win_over_country_defaults():
    settings = {'head_designer_fixed': 10, 'chatterfy_cost_default': 5}
    result = calculate_all_metrics({'payroll_head_designer': 0, 'chatterfy_cost': 2}, settings)
    assert result['payroll_head_designer'] == 0
    assert result['chatterfy_cost'] == 2


def test_format_helpers():
    assert format_currency(1234.5) == '1234.50 USDT'
    assert format_currency(3, 'UAH') == '3.00 UAH'
    assert format_percent(0.3245) == '32.45%'


def test_buyer_metrics_guard_zero_counts():
    from app.calculator.metrics import calculate_buyer_metrics

    result = calculate_buyer_metrics({'spend': 250, 'subscriptions': 0, 'dialogs': 7, 'fd_count': 0})
    assert result['cost_per_subscription'] == 0
    assert result['cost_per_fd'] == 0
    assert result['conversion_rate'] == 0
    assert result['payroll_amount'] == pytest.approx(25)


def test_buyer_metrics_ratios():
    from app.calculator.metrics import calculate_buyer_metrics

    result = calculate_buyer_metrics({'spend': 300, 'subscriptions': 60, 'dialogs': 15, 'fd_count': 4})
    assert result['cost_per_subscription'] == pytest.approx(5)
    assert result['cost_per_fd'] == pytest.approx(75)
    assert result['conversion_rate'] == pytest.approx(25)


@pytest.mark.parametrize('spend_manual, expected', [(None, 20), (0, 20), (35, 3.5)])
def test_manual_spend_replaces_collected_spend(spend_manual, expected):
    from app.calculator.metrics import calculate_buyer_metrics

    result = calculate_buyer_metrics({'spend': 200, 'spend_manual': spend_manual})
    assert result['payroll_amount'] == pytest.approx(expected)
