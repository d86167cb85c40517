from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Protocol, Tuple

from django.conf import settings
from openai import OpenAI

from .exceptions import ValuationProviderError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MINIMUM_RETAIL_PRICE = Decimal("5")
MAXIMUM_RETAIL_PRICE = Decimal("1000000")
BUYBACK_RATIO = Decimal("0.5")

SOURCE_AI = "ai"
SOURCE_FALLBACK = "fallback"

FALLBACK_CONFIDENCE = 0.3
FALLBACK_REASONING = "Fallback evaluation used due to AI service unavailability"
FALLBACK_BASE_PRICE = Decimal("50")
FALLBACK_CONDITION_MULTIPLIER = Decimal("0.5")
FALLBACK_DEPRECIATION = 0.4

CONDITION_MULTIPLIERS: Dict[str, Decimal] = {
    "excellent": Decimal("0.8"),
    "like new": Decimal("0.8"),
    "good": Decimal("0.6"),
    "fair": Decimal("0.4"),
    "poor": Decimal("0.2"),
}

CONDITION_DEPRECIATION: Dict[str, float] = {
    "excellent": 0.1,
    "like new": 0.1,
    "good": 0.3,
    "fair": 0.5,
    "poor": 0.7,
}

# Matched in order against the item's category text.
CATEGORY_BASE_PRICES: Tuple[Tuple[str, Decimal], ...] = (
    ("electronics", Decimal("150")),
    ("clothing", Decimal("40")),
    ("furniture", Decimal("100")),
    ("books", Decimal("15")),
    ("home", Decimal("60")),
    ("sports", Decimal("80")),
    ("toys", Decimal("30")),
)

SYSTEM_PROMPT = (
    "You are an expert valuation specialist for second-hand goods in the Australian marketplace. "
    "Provide accurate, conservative price estimates in Australian dollars. "
    "Respond with a single JSON object and nothing else."
)


@dataclass(frozen=True)
class ItemDetails:
    title: str
    description: str = ""
    condition: str = ""
    age: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    images: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BuybackValuation:
    estimated_retail_price: Decimal
    buyback_offer_price: Decimal
    confidence: float
    reasoning: str
    condition_assessment: str
    depreciation: float
    brand_value: str
    market_demand: str
    category: str
    suggested_listing_price: Decimal
    market_factors: List[str] = field(default_factory=list)
    source: str = SOURCE_AI

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK

    def as_dict(self) -> Dict[str, Any]:
        return {
            "estimated_retail_price": str(self.estimated_retail_price),
            "buyback_offer_price": str(self.buyback_offer_price),
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "market_factors": list(self.market_factors),
            "condition_assessment": self.condition_assessment,
            "depreciation": self.depreciation,
            "brand_value": self.brand_value,
            "market_demand": self.market_demand,
            "category": self.category,
            "suggested_listing_price": str(self.suggested_listing_price),
            "source": self.source,
        }


class ValuationProvider(Protocol):
    def request_valuation(self, prompt: str, system_prompt: str) -> str:
        ...


class OpenAIValuationProvider:
    """Chat-completions backed provider. Every failure is raised as ValuationProviderError."""

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        self._client = client
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout if timeout is not None else settings.BUYBACK_VALUATION_TIMEOUT

    def _get_client(self) -> OpenAI:
        if self._client is None:
            # Relies on OPENAI_API_KEY env var configured globally.
            self._client = OpenAI(timeout=self.timeout, max_retries=0)
        return self._client

    def request_valuation(self, prompt: str, system_prompt: str) -> str:
        try:
            response = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.2,
                max_tokens=1000,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
            content = response.choices[0].message.content
        except Exception as exc:  # noqa: BLE001
            raise ValuationProviderError(f"Valuation request failed: {exc}") from exc

        if not isinstance(content, str) or not content.strip():
            raise ValuationProviderError("Valuation provider returned an empty response")
        return content


def build_valuation_prompt(item: ItemDetails) -> str:
    return f"""You are an expert second-hand marketplace valuation specialist for the Australian market.

Evaluate this item and provide a comprehensive assessment:

ITEM DETAILS:
- Title: {item.title}
- Description: {item.description or 'Not specified'}
- Condition: {item.condition or 'Not specified'}
- Age: {item.age or 'Not specified'}
- Brand: {item.brand or 'Not specified'}
- Category: {item.category or 'Not specified'}

EVALUATION REQUIREMENTS:
1. Estimate current Australian retail market value (AUD)
2. Consider condition, age, brand reputation, and market demand
3. Factor in depreciation and wear patterns for the item type
4. Assess brand value and market positioning

RESPONSE FORMAT (JSON only):
{{
  "estimated_retail_price": number,
  "confidence": number (0-1),
  "reasoning": "detailed explanation of pricing factors",
  "market_factors": ["factor1", "factor2", "factor3"],
  "condition_assessment": "assessment of current condition impact",
  "depreciation": number (fraction between 0 and 1),
  "brand_value": "high/medium/low with explanation",
  "market_demand": "high/medium/low with explanation",
  "category": "refined category classification",
  "suggested_listing_price": number
}}

Provide realistic, conservative estimates based on actual market conditions.
"""


def parse_provider_payload(text: str) -> Dict[str, Any]:
    """
    Decode the provider's JSON answer.

    Models sometimes wrap the object in prose or markdown fences, so when the
    whole text is not valid JSON the outermost ``{...}`` block is tried.
    """
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError):
        match = re.search(r"\{[\s\S]*\}", text or "")
        if not match:
            raise ValuationProviderError("Failed to parse valuation response")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ValuationProviderError("Failed to parse valuation response") from exc

    if not isinstance(data, dict):
        raise ValuationProviderError("Valuation response is not a JSON object")
    return data


def _field(payload: Dict[str, Any], snake: str, camel: str) -> Any:
    value = payload.get(snake)
    if value is None:
        value = payload.get(camel)
    return value


def _parse_number(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip().replace(",", "").lstrip("$")
    try:
        number = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def _clamp_ratio(value: Any, default: float) -> float:
    number = _parse_number(value)
    if number is None:
        return default
    return float(min(Decimal("1"), max(Decimal("0"), number)))


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def buyback_offer_for(retail_price: Decimal) -> Decimal:
    return (retail_price * BUYBACK_RATIO).quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_valuation(payload: Dict[str, Any], item: ItemDetails) -> BuybackValuation:
    parsed_retail = _parse_number(_field(payload, "estimated_retail_price", "estimatedRetailPrice"))
    if parsed_retail is None:
        raise ValuationProviderError("Valuation response has no usable retail price")

    retail_price = min(MAXIMUM_RETAIL_PRICE, max(MINIMUM_RETAIL_PRICE, parsed_retail)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )
    suggested = _parse_number(_field(payload, "suggested_listing_price", "suggestedListingPrice"))
    if suggested is None:
        suggested = retail_price
    suggested_price = max(retail_price, min(MAXIMUM_RETAIL_PRICE, suggested))

    factors = _field(payload, "market_factors", "marketFactors")
    market_factors = [str(f) for f in factors] if isinstance(factors, list) else []

    return BuybackValuation(
        estimated_retail_price=retail_price,
        buyback_offer_price=buyback_offer_for(retail_price),
        confidence=_clamp_ratio(payload.get("confidence"), default=0.5),
        reasoning=_text(payload.get("reasoning"), "AI evaluation completed"),
        market_factors=market_factors,
        condition_assessment=_text(
            _field(payload, "condition_assessment", "conditionAssessment"), "Assessment pending"
        ),
        depreciation=_clamp_ratio(payload.get("depreciation"), default=0.0),
        brand_value=_text(_field(payload, "brand_value", "brandValue"), "medium"),
        market_demand=_text(_field(payload, "market_demand", "marketDemand"), "medium"),
        category=_text(payload.get("category"), item.category or "general"),
        suggested_listing_price=suggested_price.quantize(CENT, rounding=ROUND_HALF_UP),
        source=SOURCE_AI,
    )


def _normalize_condition(condition: Optional[str]) -> str:
    text = (condition or "").lower().replace("-", " ").replace("_", " ")
    return " ".join(text.split())


def estimate_fallback_price(item: ItemDetails) -> Decimal:
    multiplier = CONDITION_MULTIPLIERS.get(_normalize_condition(item.condition), FALLBACK_CONDITION_MULTIPLIER)

    base_price = FALLBACK_BASE_PRICE
    category = (item.category or "").lower()
    for keyword, price in CATEGORY_BASE_PRICES:
        if keyword in category:
            base_price = price
            break

    estimate = (base_price * multiplier).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(MINIMUM_RETAIL_PRICE, estimate)


def fallback_valuation(item: ItemDetails) -> BuybackValuation:
    price = estimate_fallback_price(item).quantize(CENT)
    return BuybackValuation(
        estimated_retail_price=price,
        buyback_offer_price=buyback_offer_for(price),
        confidence=FALLBACK_CONFIDENCE,
        reasoning=FALLBACK_REASONING,
        market_factors=["fallback_pricing"],
        condition_assessment=f"Based on condition: {item.condition or 'unknown'}",
        depreciation=CONDITION_DEPRECIATION.get(_normalize_condition(item.condition), FALLBACK_DEPRECIATION),
        brand_value="unknown",
        market_demand="medium",
        category=item.category or "general",
        suggested_listing_price=price,
        source=SOURCE_FALLBACK,
    )


def evaluate_item(item: ItemDetails, provider: Optional[ValuationProvider] = None) -> BuybackValuation:
    """
    Value an item for instant buyback.

    Never raises: when the provider is unreachable, times out or answers with
    something that cannot be used, the rule-based fallback estimate is
    returned instead (``source == "fallback"``, confidence 0.3).
    """
    try:
        provider = provider or OpenAIValuationProvider()
        raw = provider.request_valuation(build_valuation_prompt(item), SYSTEM_PROMPT)
        return normalize_valuation(parse_provider_payload(raw), item)
    except ValuationProviderError as exc:
        logger.warning("Buyback valuation for %r fell back to rules: %s", item.title, exc)
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected buyback valuation failure for %r", item.title)
    return fallback_valuation(item)
