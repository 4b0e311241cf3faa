from typing import Dict

def validate_pair_ids(product_id, market_id) -> Dict[str, str]:
    """Validate a product/market id pair.

    Args:
        product_id: Product ID
        market_id: Market ID

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not isinstance(product_id, int) or isinstance(product_id, bool) or product_id <= 0:
        errors['product_id'] = 'Product ID must be a positive integer'

    if not isinstance(market_id, int) or isinstance(market_id, bool) or market_id <= 0:
        errors['market_id'] = 'Market ID must be a positive integer'

    return errors

def validate_override_request(request) -> Dict[str, str]:
    """Validate a manual override request.

    Args:
        request: OverrideRequest to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    has_target = (
        request.product_id is not None
        or bool(request.product_ids)
        or bool(request.market_ids)
        or bool(request.pairs)
    )
    if not has_target:
        errors['target'] = 'At least one product, market or pair is required'

    if request.force_trend is None and request.manual_price is None:
        errors['override'] = 'Either a trend directive or a manual price is required'

    if request.manual_price is not None and request.manual_price < 0:
        errors['manual_price'] = 'Manual price cannot be negative'

    if not request.reason or not request.reason.strip():
        errors['reason'] = 'A reason is required'

    return errors
