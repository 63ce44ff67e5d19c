# price_tracker/services/extractor.py
"""
Price extraction from marketplace product pages.

Each source has an ordered list of rules. A rule is a plain callable taking
the parsed page and returning a positive price or None; rules are tried in
order and the first positive value wins. A page with no usable price is a
normal outcome and yields None, never an exception.
"""

import json
import logging
import math
import re
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

from bs4 import BeautifulSoup

from price_tracker.models import Source

logger = logging.getLogger(__name__)

Rule = Callable[[BeautifulSoup], Optional[float]]

NON_PRICE_CHARS = re.compile(r"[^0-9.]")


def parse_price(text) -> Optional[float]:
    """
    Keep only digits and '.', then parse. '₹1,29,999.00' -> 129999.0.
    Returns None for empty, unparsable ('1.2.3') or non-positive values.
    """
    if text is None:
        return None
    digits = NON_PRICE_CHARS.sub("", str(text))
    if not digits:
        return None
    try:
        value = float(digits)
    except ValueError:
        return None
    # a run of hundreds of digits parses to inf
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def selector_rule(css: str) -> Rule:
    """First element matching ``css``; its text parsed as a price."""

    def rule(soup: BeautifulSoup) -> Optional[float]:
        el = soup.select_one(css)
        if el is None:
            return None
        return parse_price(el.get_text(strip=True))

    rule.__name__ = f"selector({css})"
    return rule


def _offer_prices(offers) -> List[float]:
    if isinstance(offers, dict):
        offers = [offers]
    if not isinstance(offers, list):
        return []
    out = []
    for o in offers:
        if not isinstance(o, dict):
            continue
        candidates = [o.get("price"), o.get("lowPrice")]
        spec = o.get("priceSpecification")
        if isinstance(spec, dict):
            spec = [spec]
        if isinstance(spec, list):
            candidates.extend(s.get("price") for s in spec if isinstance(s, dict))
        for p in candidates:
            value = parse_price(p)
            if value is not None:
                out.append(value)
                break
    return out


def json_ld_rule() -> Rule:
    """Lowest ``offers.price`` across JSON-LD Product nodes."""

    def rule(soup: BeautifulSoup) -> Optional[float]:
        prices: List[float] = []
        for tag in soup.find_all("script", type="application/ld+json"):
            txt = (tag.string or tag.get_text() or "").strip()
            if not txt:
                continue
            try:
                data = json.loads(txt)
            except ValueError:
                continue
            nodes = data if isinstance(data, list) else [data]
            for node in nodes:
                if not isinstance(node, dict):
                    continue
                typ = node.get("@type", "")
                if isinstance(typ, list):
                    typ = " ".join(str(t) for t in typ)
                if not any(t in str(typ).lower() for t in ("product", "mobilephone")):
                    continue
                prices.extend(_offer_prices(node.get("offers")))
        return min(prices) if prices else None

    rule.__name__ = "json_ld"
    return rule


AMAZON_SELECTORS = [
    ".a-price-whole",
    "#priceblock_ourprice",
    "#priceblock_dealprice",
    ".a-price .a-offscreen",
    "#price_inside_buybox",
]

FLIPKART_SELECTORS = [
    "._30jeq3._16Jk6d",
    "._30jeq3",
    ".CEmiEU div",
    "._1vC4OE",
]


def default_rules() -> Dict[Source, List[Rule]]:
    return {
        Source.AMAZON: [selector_rule(css) for css in AMAZON_SELECTORS] + [json_ld_rule()],
        Source.FLIPKART: [selector_rule(css) for css in FLIPKART_SELECTORS] + [json_ld_rule()],
    }


class PriceExtractor:
    def __init__(self, rules: Optional[Mapping[Source, Sequence[Rule]]] = None):
        self.rules: Dict[Source, List[Rule]] = {
            Source(k): list(v) for k, v in (rules or default_rules()).items()
        }

    def extract(self, document: str, source: Union[Source, str]) -> Optional[float]:
        try:
            source = Source(source)
        except ValueError:
            logger.warning("No extraction rules for unknown source %r", source)
            return None

        rules = self.rules.get(source) or []
        if not rules or not document:
            return None

        soup = BeautifulSoup(document, "html.parser")
        for rule in rules:
            name = getattr(rule, "__name__", rule)
            try:
                price = rule(soup)
            except Exception as e:
                logger.debug("%s rule %s failed, treating as miss: %s", source.value, name, e)
                continue
            if price is not None and price > 0:
                logger.debug("%s price %.2f via %s", source.value, price, name)
                return price
        return None


_default_extractor: Optional[PriceExtractor] = None


def extract(document: str, source: Union[Source, str]) -> Optional[float]:
    """Module-level shortcut using the default rule set."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = PriceExtractor()
    return _default_extractor.extract(document, source)
