# ==============================================================================
# app/calculator/schema.py
# ------------------------------------------------------------------------------
# Defines the expected structure of an uploaded daily metrics sheet.
# This schema is the single source of truth for the validator.
# ==============================================================================

EXPECTED_COLUMNS = {
    'required_columns': [
        'date', 'country_code',
        'spend_trust', 'spend_crossgif', 'spend_fbm',
        'revenue_local_priemka', 'revenue_usdt_priemka',
        'revenue_local_own', 'revenue_usdt_own',
        'fd_count', 'fd_sum_local',
    ],
    'optional_columns': [
        'payroll_content', 'payroll_reviews', 'payroll_designer', 'payroll_head_designer',
        'chatterfy_cost', 'additional_expenses',
        'ad_account_balance_fact', 'balance_priemka_fact', 'balance_own_fact',
    ],
    'numeric_columns': [
        'spend_trust', 'spend_crossgif', 'spend_fbm',
        'revenue_local_priemka', 'revenue_usdt_priemka',
        'revenue_local_own', 'revenue_usdt_own',
        'fd_count', 'fd_sum_local',
        'payroll_content', 'payroll_reviews', 'payroll_designer', 'payroll_head_designer',
        'chatterfy_cost', 'additional_expenses',
        'ad_account_balance_fact', 'balance_priemka_fact', 'balance_own_fact',
    ],
    'integer_columns': ['fd_count'],
}
