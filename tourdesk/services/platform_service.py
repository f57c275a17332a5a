from decimal import Decimal, InvalidOperation

from flask import current_app

from tourdesk.extensions import db
from tourdesk.models import PlatformSetting

RATE_SETTINGS = {
    "tax_rate": "DEFAULT_TAX_RATE",
    "deposit_percentage": "DEFAULT_DEPOSIT_PERCENTAGE",
    "gratuity_percentage": "DEFAULT_GRATUITY_PERCENTAGE",
}


class PlatformService:
    @staticmethod
    def get_setting(key, default=None):
        setting = db.session.get(PlatformSetting, key)
        if not setting:
            return default
        return setting.value

    @staticmethod
    def get_decimal(key, default):
        raw = PlatformService.get_setting(key, str(default))
        try:
            return Decimal(str(raw))
        except InvalidOperation:
            current_app.logger.warning("Setting %s has a non-numeric value %r; using %s.", key, raw, default)
            return Decimal(str(default))

    @staticmethod
    def rate(key):
        return PlatformService.get_decimal(key, current_app.config[RATE_SETTINGS[key]])

    @staticmethod
    def set_setting(key, value):
        setting = db.session.get(PlatformSetting, key)
        if setting:
            setting.value = str(value)
        else:
            setting = PlatformSetting(key=key, value=str(value))
            db.session.add(setting)
        db.session.commit()
        return setting
