"""
Utility modules for the travel API
"""
from .config_loader import AppConfig, get_app_config, load_app_config
from .country_codes import normalize_billing_address, normalize_country_code
from .date_utils import get_next_day, get_today_date, parse_to_iso_date
from .validation import FormValidationError

__all__ = [
    'AppConfig',
    'get_app_config',
    'load_app_config',
    'normalize_billing_address',
    'normalize_country_code',
    'get_next_day',
    'get_today_date',
    'parse_to_iso_date',
    'FormValidationError',
]
