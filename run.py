# ==============================================================================
# run.py
# ------------------------------------------------------------------------------
# The main entry point to launch the Flask application.
# ==============================================================================

from app import create_app, db
from app.models import (AppSetting, Balance, BalanceTransaction, BuyerMetrics, Country,
                        DailyMetrics, Employee, Expense, Payment)

# Create the Flask application instance using the factory function
app = create_app()

@app.shell_context_processor
def make_shell_context():
    """Provides a shell context for the `flask shell` command."""
    return {
        'db': db,
        'AppSetting': AppSetting,
        'Balance': Balance,
        'BalanceTransaction': BalanceTransaction,
        'BuyerMetrics': BuyerMetrics,
        'Country': Country,
        'DailyMetrics': DailyMetrics,
        'Employee': Employee,
        'Expense': Expense,
        'Payment': Payment,
    }

if __name__ == '__main__':
    app.run(debug=True)
