# ==============================================================================
# app/calculator/settings.py
# ------------------------------------------------------------------------------
# Payroll settings resolver. Reads the tunable payroll rates from the
# AppSetting key-value table and fills anything missing with defaults.
# ==============================================================================

import logging
import re
from app.models import AppSetting

# key: (default, description)
PAYROLL_SETTING_DEFAULTS = {
    'buyerRate': (12.0, 'Buyer rate (% of spend)'),
    'rdHandlerRate': (4.0, 'RD handler rate (% of RD sum)'),
    'headDesignerFixed': (10.0, 'Head designer fixed pay per active day ($)'),
    'contentFixedRate': (15.0, 'Content fixed pay per project/day ($)'),
    'designerFixedRate': (20.0, 'Designer fixed pay per project/day ($)'),
    'reviewerFixedRate': (10.0, 'Reviewer fixed pay per project/day ($)'),
    'fdTier1Rate': (3.0, 'FD tier 1 rate (< 5) $'),
    'fdTier2Rate': (4.0, 'FD tier 2 rate (5-10) $'),
    'fdTier3Rate': (5.0, 'FD tier 3 rate (10+) $'),
    'fdBonusThreshold': (5.0, 'FD bonus threshold (count)'),
    'fdBonus': (15.0, 'FD bonus amount ($)'),
    'fdMultiplier': (1.2, 'FD multiplier'),
}

# Shown and edited alongside the payroll keys but not read by the payroll engine
DISPLAY_SETTING_DEFAULTS = {
    'trustAgencyFee': ('9', 'TRUST agency fee (%)'),
    'crossgifAgencyFee': ('8', 'CROSSGIF agency fee (%)'),
    'fbmAgencyFee': ('8', 'FBM agency fee (%)'),
    'priemkaCommission': ('15', 'Priemka commission (%)'),
    'filterZeroSpend': ('true', 'Exclude days with zero spend'),
}

_LEADING_NUMBER = re.compile(r'^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')


def parse_float(value, default):
    """
    Reads the leading number of a stored string. Missing, malformed and zero
    values all resolve to the default.
    """
    if value is None:
        return default
    match = _LEADING_NUMBER.match(str(value))
    if not match:
        return default
    number = float(match.group(0))
    return number or default


class PayrollSettings:
    """
    A fully populated, read-only set of payroll rates. Load it once per
    request and pass it to the payroll engine.
    """
    __slots__ = ('buyer_rate', 'rd_handler_rate', 'head_designer_fixed', 'content_fixed_rate',
                 'designer_fixed_rate', 'reviewer_fixed_rate', 'fd_tier1_rate', 'fd_tier2_rate',
                 'fd_tier3_rate', 'fd_bonus_threshold', 'fd_bonus', 'fd_multiplier')

    _KEYS = {
        'buyer_rate': 'buyerRate',
        'rd_handler_rate': 'rdHandlerRate',
        'head_designer_fixed': 'headDesignerFixed',
        'content_fixed_rate': 'contentFixedRate',
        'designer_fixed_rate': 'designerFixedRate',
        'reviewer_fixed_rate': 'reviewerFixedRate',
        'fd_tier1_rate': 'fdTier1Rate',
        'fd_tier2_rate': 'fdTier2Rate',
        'fd_tier3_rate': 'fdTier3Rate',
        'fd_bonus_threshold': 'fdBonusThreshold',
        'fd_bonus': 'fdBonus',
        'fd_multiplier': 'fdMultiplier',
    }

    def __init__(self, **values):
        for attr, key in self._KEYS.items():
            object.__setattr__(self, attr, values.get(attr, PAYROLL_SETTING_DEFAULTS[key][0]))

    def __setattr__(self, name, value):
        raise AttributeError('PayrollSettings is read-only')

    def __repr__(self):
        return f'<PayrollSettings {self.as_dict()}>'

    @classmethod
    def from_mapping(cls, mapping):
        """Builds settings from a raw key -> string map, applying defaults."""
        return cls(**{
            attr: parse_float(mapping.get(key), PAYROLL_SETTING_DEFAULTS[key][0])
            for attr, key in cls._KEYS.items()
        })

    @classmethod
    def load(cls):
        """Reads the payroll keys from the AppSetting table."""
        rows = AppSetting.query.filter(AppSetting.key.in_(PAYROLL_SETTING_DEFAULTS.keys())).all()
        settings = cls.from_mapping({row.key: row.value for row in rows})
        logging.debug(f"Loaded payroll settings: {settings}")
        return settings

    def as_dict(self):
        return {attr: getattr(self, attr) for attr in self._KEYS}


def get_all_settings():
    """Every known setting merged over its default, as the settings API shows them."""
    merged = {key: str(default) for key, (default, _) in PAYROLL_SETTING_DEFAULTS.items()}
    merged.update({key: default for key, (default, _) in DISPLAY_SETTING_DEFAULTS.items()})
    for row in AppSetting.query.all():
        merged[row.key] = row.value
    return merged


def setting_description(key):
    entry = PAYROLL_SETTING_DEFAULTS.get(key) or DISPLAY_SETTING_DEFAULTS.get(key)
    return entry[1] if entry else None
