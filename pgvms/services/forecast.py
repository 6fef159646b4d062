from __future__ import annotations

import json
import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

import httpx

from pgvms.config import Settings
from pgvms.errors import ForecastError
from pgvms.models import InventoryLot, Sale, Transaction

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
FAILURE_MESSAGE = "Failed to generate demand forecast."

RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "itemName": {"type": "STRING"},
            "predictedDemand": {"type": "NUMBER"},
            "unit": {"type": "STRING", "description": "e.g., kg, box, piece"},
            "justification": {"type": "STRING"},
        },
        "required": ["itemName", "predictedDemand", "unit", "justification"],
    },
}


@dataclass(frozen=True)
class HistoricalRecord:
    date: str
    itemName: str
    soldQty: float


@dataclass
class ForecastRequest:
    historical_data: list[HistoricalRecord]
    weather: str
    season: str
    items_to_forecast: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ForecastRow:
    item_name: str
    predicted_demand: float
    unit: str
    justification: str


# -------------------------
# Request building
# -------------------------

def historical_sales(transactions: Iterable[Transaction], lots: Iterable[InventoryLot]) -> list[HistoricalRecord]:
    """
    Quantity sold per (day, item name), oldest day first. The item name is
    the lot's base name (variants are summed together) when the lot is still
    known, otherwise the label printed on the sale line.
    """
    names = {l.id: l.name for l in lots}
    totals: "OrderedDict[tuple[str, str], float]" = OrderedDict()

    sales = sorted((t for t in transactions if isinstance(t, Sale) and t.date is not None), key=lambda t: t.date)
    for s in sales:
        day = s.date.date().isoformat()
        for line in s.valid_lines:
            name = names.get(line.inventory_lot_id, line.item_name)
            key = (day, name)
            totals[key] = totals.get(key, 0.0) + float(line.quantity)

    return [HistoricalRecord(date=d, itemName=n, soldQty=round(q, 3)) for (d, n), q in totals.items()]


def items_to_forecast(lots: Iterable[InventoryLot], now: datetime) -> list[str]:
    """Distinct names of lots that have not expired, in first-seen order."""
    seen: list[str] = []
    for l in lots:
        if l.expiry_date > now and l.name not in seen:
            seen.append(l.name)
    return seen


def build_prompt(req: ForecastRequest) -> str:
    history = json.dumps([asdict(r) for r in req.historical_data], indent=2)
    return f"""
You are a demand forecasting expert for a perishable goods business in India.
Analyze the following historical sales data, weather conditions, and seasonality to predict demand for the given items.
Provide a justification for each prediction.

Historical Sales Data:
{history}

Current Conditions:
- Weather: {req.weather}
- Season: {req.season}

Items to Forecast:
{', '.join(req.items_to_forecast)}

Provide the forecast in a structured JSON format.
""".strip()


# -------------------------
# Response parsing
# -------------------------

def _row(raw: Any) -> ForecastRow:
    if not isinstance(raw, dict):
        raise ValueError(f"forecast row is not an object: {raw!r}")
    missing = [k for k in ("itemName", "predictedDemand", "unit", "justification") if k not in raw]
    if missing:
        raise ValueError(f"forecast row missing {', '.join(missing)}")
    return ForecastRow(
        item_name=str(raw["itemName"]),
        predicted_demand=float(raw["predictedDemand"]),
        unit=str(raw["unit"]),
        justification=str(raw["justification"]),
    )


def parse_forecast_response(payload: Any) -> list[ForecastRow]:
    """
    Pulls the JSON text out of a generateContent response and turns it into
    rows. Raises ValueError/KeyError/TypeError on any shape mismatch.
    """
    text = payload["candidates"][0]["content"]["parts"][0]["text"]
    data = json.loads(str(text).strip())
    if not isinstance(data, list):
        raise ValueError("forecast response is not a list")
    return [_row(r) for r in data]


# -------------------------
# Collaborator call
# -------------------------

def get_demand_forecast(
    req: ForecastRequest,
    settings: Settings,
    *,
    client: Optional[httpx.Client] = None,
) -> list[ForecastRow]:
    """
    One attempt, no retry. Every failure (missing key, transport, HTTP status,
    unparseable body) surfaces as a single ForecastError.
    """
    if not settings.forecast_api_key:
        logger.error("Forecast API key not configured (PGVMS_FORECAST_API_KEY / GEMINI_API_KEY)")
        raise ForecastError(f"{FAILURE_MESSAGE} The forecast API key is not configured.")

    body = {
        "contents": [{"parts": [{"text": build_prompt(req)}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }
    url = GEMINI_URL.format(model=settings.forecast_model)
    headers = {"x-goog-api-key": settings.forecast_api_key}

    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=settings.forecast_timeout_s)
    try:
        response = client.post(url, json=body, headers=headers)
        response.raise_for_status()
        rows = parse_forecast_response(response.json())
    except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
        logger.error("Error fetching demand forecast: %s", e)
        raise ForecastError(FAILURE_MESSAGE) from e
    finally:
        if owns_client:
            client.close()

    logger.info("Forecast returned %d row(s) for %d item(s)", len(rows), len(req.items_to_forecast))
    return rows
