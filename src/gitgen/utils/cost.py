"""Cost estimation and currency formatting for model pricing."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from gitgen.config import ModelConfig, PricingInfo

TOKENS_PER_PRICING_UNIT = Decimal(1_000_000)

CURRENCY_SYMBOLS = {
	"USD": "$",
	"EUR": "€",
	"GBP": "£",
	"JPY": "¥",
	"AUD": "A$",
	"CAD": "C$",
	"CHF": "CHF",
	"CNY": "¥",
	"INR": "₹",
	"KRW": "₩",
	"SGD": "S$",
	"NZD": "NZ$",
	"BRL": "R$",
	"HKD": "HK$",
	"SEK": "kr",
	"NOK": "kr",
	"DKK": "kr",
	"PLN": "zł",
	"CZK": "Kč",
	"HUF": "Ft",
}

# Amount is printed before the symbol
SUFFIX_SYMBOL_CURRENCIES = frozenset({"SEK", "NOK", "DKK", "CZK", "PLN", "HUF"})
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "HUF"})


def currency_symbol(currency_code: str) -> str | None:
	"""Symbol for ``currency_code``, or None when there is no common one."""
	return CURRENCY_SYMBOLS.get(currency_code.upper())


def format_currency(amount: Decimal | float, currency_code: str) -> str:
	"""
	Format ``amount`` with the symbol and precision usual for the currency.

	Most currencies use four decimals; currencies without minor units are
	rounded to whole numbers. Unknown codes are written after the amount.

	"""
	code = currency_code.upper()
	value = Decimal(str(amount))
	symbol = currency_symbol(code)
	if code in ZERO_DECIMAL_CURRENCIES:
		text = f"{value.quantize(Decimal(1), rounding=ROUND_HALF_UP)}"
	else:
		text = f"{value.quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP)}"
	if symbol is None:
		return f"{text} {code}"
	if code in SUFFIX_SYMBOL_CURRENCIES:
		return f"{text} {symbol}"
	return f"{symbol}{text}"


def has_pricing(model: ModelConfig) -> bool:
	pricing = model.pricing
	return pricing is not None and (pricing.input_per_1m > 0 or pricing.output_per_1m > 0)


def calculate_cost(model: ModelConfig, input_tokens: int, output_tokens: int) -> Decimal | None:
	"""
	Cost of a call in the model's pricing currency.

	Returns:
	    The amount, or None when the model has no pricing configured

	"""
	if not has_pricing(model) or model.pricing is None:
		return None
	pricing = model.pricing
	input_cost = Decimal(input_tokens) / TOKENS_PER_PRICING_UNIT * Decimal(str(pricing.input_per_1m))
	output_cost = Decimal(output_tokens) / TOKENS_PER_PRICING_UNIT * Decimal(str(pricing.output_per_1m))
	return input_cost + output_cost


def format_cost(model: ModelConfig, input_tokens: int, output_tokens: int) -> str:
	"""Formatted cost of a call, or an empty string without pricing."""
	cost = calculate_cost(model, input_tokens, output_tokens)
	if cost is None or model.pricing is None:
		return ""
	return format_currency(cost, model.pricing.currency_code)


def format_pricing(pricing: PricingInfo) -> str:
	"""Describe input/output prices, e.g. ``$0.1500/$0.6000 per 1M tokens``."""
	input_text = format_currency(pricing.input_per_1m, pricing.currency_code)
	output_text = format_currency(pricing.output_per_1m, pricing.currency_code)
	return f"{input_text}/{output_text} per 1M tokens"
