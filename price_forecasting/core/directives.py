# price_forecasting/core/directives.py
import re

from ..exceptions import DirectiveParseError

# "+10% Increase", "-20% Decrease", "15 % increase", "12.5%"
_PERCENT_PATTERN = re.compile(r'^\s*([+-]?\d+(?:\.\d+)?)\s*%\s*(increase|decrease)?\s*$', re.IGNORECASE)

# Directives that keep the current price
NEUTRAL_DIRECTIVES = {'STABILIZE', 'NO_OVERRIDE', 'NO CHANGE', 'HOLD'}

def parse_trend_directive(directive: str) -> float:
    """Parse a named trend directive into a percentage change.

    Args:
        directive: Text such as "+10% Increase", "-20% Decrease" or "STABILIZE"

    Returns:
        Signed percentage change

    Raises:
        DirectiveParseError: If the directive is not recognised
    """
    if directive is None:
        raise DirectiveParseError("Trend directive is empty")

    text = directive.strip()
    if text.upper() in NEUTRAL_DIRECTIVES:
        return 0.0

    match = _PERCENT_PATTERN.match(text)
    if not match:
        raise DirectiveParseError(
            f"Unrecognized trend directive: '{directive}'",
            details={'directive': directive}
        )

    number, word = match.group(1), match.group(2)
    pct = float(number)

    # An unsigned amount takes its direction from the trailing word
    if word and word.lower() == 'decrease' and not number.startswith(('+', '-')):
        pct = -pct

    return pct

def apply_trend(current_price: float, pct: float) -> float:
    """Apply a percentage change to a price, never going below zero."""
    return max(0.0, current_price * (1.0 + pct / 100.0))
