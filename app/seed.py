from app import db
from app.calculator.settings import DISPLAY_SETTING_DEFAULTS, PAYROLL_SETTING_DEFAULTS
from app.ledger.balances import ensure_default_balances
from app.models import AppSetting

DEFAULT_SETTINGS = {
    # key: [value, description, value_type]
    key: [str(default), description, 'string' if key == 'filterZeroSpend' else 'float']
    for key, (default, description) in {**PAYROLL_SETTING_DEFAULTS, **DISPLAY_SETTING_DEFAULTS}.items()
}


def seed_data():
    """Populates the database with default settings and balances."""
    # Seed App Settings
    for key, data in DEFAULT_SETTINGS.items():
        setting = AppSetting.query.filter_by(key=key).first()
        if not setting: # Only add if it doesn't exist
            setting = AppSetting(key=key, value=data[0], description=data[1], value_type=data[2])
            db.session.add(setting)
            print(f'Seeding setting: {key}')
    db.session.commit()

    # Seed Balances
    if ensure_default_balances():
        print('Seeding default balances...')

    print('Seeding complete.')
