import logging

import requests

from config import MARKET_QUOTE_URL, MARKET_TIMEOUT

logger = logging.getLogger(__name__)

WATCHLIST = [
    {"symbol": "NIFTYBEES.NS", "name": "Nifty 50 ETF", "type": "Safe"},
    {"symbol": "GOLDBEES.NS", "name": "Gold ETF", "type": "Safe"},
    {"symbol": "ITC.NS", "name": "ITC Ltd", "type": "Safe"},
    {"symbol": "SBIN.NS", "name": "SBI Bank", "type": "Safe"},
    {"symbol": "TATAPOWER.NS", "name": "Tata Power", "type": "Safe"},
    {"symbol": "ONGC.NS", "name": "ONGC", "type": "Safe"},
    {"symbol": "BEL.NS", "name": "Bharat Electronics", "type": "Safe"},
    {"symbol": "RELIANCE.NS", "name": "Reliance Ind.", "type": "Moderate"},
    {"symbol": "INFY.NS", "name": "Infosys", "type": "Moderate"},
    {"symbol": "TCS.NS", "name": "TCS", "type": "Moderate"},
]

FALLBACK_PRICE = 250.0
FALLBACK_CHANGE = 1.2


def fetch_quotes(symbols):
    """
    Fetch live quotes as [{"symbol", "price", "change"}].
    Raises requests.RequestException or ValueError when the provider fails.
    """
    r = requests.get(
        MARKET_QUOTE_URL,
        params={"symbols": ",".join(symbols)},
        headers={"User-Agent": "Mozilla/5.0"},
        timeout=MARKET_TIMEOUT,
    )
    r.raise_for_status()
    results = (r.json().get("quoteResponse") or {}).get("result") or []
    return [
        {
            "symbol": q["symbol"],
            "price": q.get("regularMarketPrice") or 0,
            "change": q.get("regularMarketChangePercent") or 0,
        }
        for q in results
        if q and q.get("symbol")
    ]


def fallback_quotes(symbols):
    return [
        {"symbol": s, "price": FALLBACK_PRICE, "change": FALLBACK_CHANGE}
        for s in symbols
    ]


def get_watchlist_quotes():
    symbols = [w["symbol"] for w in WATCHLIST]
    try:
        quotes = fetch_quotes(symbols)
    except (requests.RequestException, ValueError, AttributeError, KeyError) as e:
        logger.warning("Market data unavailable, using fallback quotes: %s", e)
        return fallback_quotes(symbols)
    if not quotes:
        logger.warning("Market data returned no quotes, using fallback quotes")
        return fallback_quotes(symbols)
    logger.info("Fetched market data for %d symbols", len(quotes))
    return quotes
