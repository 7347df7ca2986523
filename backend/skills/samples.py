"""
Built-in sample datasets (sales, temperature, stocks).

Generated from a seeded numpy generator so repeated loads are identical.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Callable, Dict, List

import numpy as np

from core.models import Record

CATEGORIES = ["Electronics", "Clothing", "Books", "Food", "Sports"]
REGIONS = ["North", "South", "East", "West"]
CITIES = ["New York", "Los Angeles", "Chicago", "Houston", "Phoenix"]
BASE_PRICES = {"AAPL": 150.0, "GOOGL": 2500.0, "MSFT": 300.0, "AMZN": 3200.0, "TSLA": 800.0}


def season(month: int) -> str:
    """Season name for a 1-based month."""
    if 3 <= month <= 5:
        return "Spring"
    if 6 <= month <= 8:
        return "Summer"
    if 9 <= month <= 11:
        return "Fall"
    return "Winter"


def _by_date(rows: List[Record]) -> List[Record]:
    return sorted(rows, key=lambda r: r["date"])


def generate_sales(seed: int = 0, n: int = 100) -> List[Record]:
    rng = np.random.default_rng(seed)
    rows: List[Record] = []
    for i in range(n):
        date = datetime(2023, int(rng.integers(1, 13)), int(rng.integers(1, 29)))
        rows.append({
            "id": i + 1,
            "date": date,
            "sales": int(rng.integers(1000, 11000)),
            "quantity": int(rng.integers(1, 101)),
            "category": CATEGORIES[int(rng.integers(len(CATEGORIES)))],
            "region": REGIONS[int(rng.integers(len(REGIONS)))],
            "profit": int(rng.integers(200, 3200)),
            "month": date.strftime("%B"),
            "quarter": f"Q{(date.month - 1) // 3 + 1}",
        })
    return _by_date(rows)


def generate_temperature(seed: int = 0, days: int = 365) -> List[Record]:
    rng = np.random.default_rng(seed)
    rows: List[Record] = []
    start = datetime(2023, 1, 1)
    for i in range(days):
        date = start + timedelta(days=i)
        base = 20 + 15 * math.sin((i / 365) * 2 * math.pi)
        for offset, city in enumerate(CITIES):
            temp = base + offset * 5 + (rng.random() - 0.5) * 10
            rows.append({
                "date": date,
                "temperature": round(temp, 1),
                "humidity": int(rng.integers(40, 80)),
                "city": city,
                "month": date.strftime("%B"),
                "season": season(date.month),
            })
    return _by_date(rows)


def generate_stocks(seed: int = 0, days: int = 90) -> List[Record]:
    rng = np.random.default_rng(seed)
    rows: List[Record] = []
    start = datetime(2023, 10, 1)
    for i in range(days):
        date = start + timedelta(days=i)
        for symbol, base in BASE_PRICES.items():
            change = (rng.random() - 0.5) * 0.05
            rows.append({
                "date": date,
                "symbol": symbol,
                "price": round(base * (1 + change), 2),
                "volume": int(rng.integers(1_000_000, 6_000_000)),
                "change": round(change * 100, 2),
                "month": date.strftime("%B"),
            })
    return _by_date(rows)


SAMPLE_GENERATORS: Dict[str, Callable[[], List[Record]]] = {
    "sales": generate_sales,
    "temperature": generate_temperature,
    "stocks": generate_stocks,
}


def load_sample(name: str) -> List[Record]:
    """Generate a sample dataset; unknown names fall back to sales."""
    return SAMPLE_GENERATORS.get(name, generate_sales)()
