"""Money display formatting.

The `*_display` fields of API payloads are rendered here with babel, using
the LOCALE setting (default bn_BD). The currency follows the locale's
territory, so bn_BD renders taka and en_US renders dollars.
"""

import logging
from decimal import Decimal
from functools import lru_cache
from typing import NamedTuple

from babel import Locale, UnknownLocaleError
from babel.numbers import format_currency, format_decimal, get_currency_symbol, get_territory_currencies

from ottalika.config import settings

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "bn_BD"
DEFAULT_CURRENCY = "BDT"


class MoneyLocale(NamedTuple):
    locale: str
    currency: str

    @property
    def symbol(self) -> str:
        return get_currency_symbol(self.currency, locale=self.locale)


@lru_cache(maxsize=16)
def resolve_money_locale(name: str | None = None) -> MoneyLocale:
    """Validated locale and its territory currency.

    An unknown locale falls back to DEFAULT_LOCALE; a locale without a
    territory (plain 'en') keeps DEFAULT_CURRENCY.
    """
    name = name or DEFAULT_LOCALE
    try:
        locale = Locale.parse(name)
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Invalid LOCALE '{name}': {e}. Falling back to '{DEFAULT_LOCALE}'")
        name, locale = DEFAULT_LOCALE, Locale.parse(DEFAULT_LOCALE)

    currencies = get_territory_currencies(locale.territory) if locale.territory else []
    return MoneyLocale(locale=name, currency=currencies[0] if currencies else DEFAULT_CURRENCY)


def format_amount(
    amount: Decimal | float | int | None,
    include_symbol: bool = True,
    locale: str | None = None,
) -> str:
    """Format a money amount for display.

    Args:
        amount: Amount to format; None renders as zero
        include_symbol: Render as currency rather than a bare number
        locale: Locale override (default: LOCALE setting)
    """
    money = resolve_money_locale(locale or settings.locale)
    value = Decimal(str(amount)) if amount is not None else Decimal("0")
    if include_symbol:
        return format_currency(value, money.currency, locale=money.locale)
    return format_decimal(value, locale=money.locale)


__all__ = ["DEFAULT_CURRENCY", "DEFAULT_LOCALE", "MoneyLocale", "format_amount", "resolve_money_locale"]
