import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./budget.db")

ENABLE_SCHEDULER = _flag("ENABLE_SCHEDULER", "true")
NOTIFICATION_SWEEP_HOUR = int(os.getenv("NOTIFICATION_SWEEP_HOUR", "21"))

MARKET_QUOTE_URL = os.getenv(
    "MARKET_QUOTE_URL", "https://query1.finance.yahoo.com/v7/finance/quote"
)
MARKET_TIMEOUT = float(os.getenv("MARKET_TIMEOUT", "10"))

CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# 50/30/20 rule
NEEDS_SHARE = 0.50
WANTS_SHARE = 0.30
SAVINGS_SHARE = 0.20
