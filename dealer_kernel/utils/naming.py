"""Field-name conversion between Python attributes and form/JSON keys."""

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Za-z])(?=[0-9])")


def camel_case(name: str) -> str:
    """``sale_price_post_discount`` -> ``salePricePostDiscount``."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def snake_case(name: str) -> str:
    """``salePricePostDiscount`` -> ``sale_price_post_discount``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()
