import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from apscheduler.schedulers.background import BackgroundScheduler

from config import ENABLE_SCHEDULER, LOG_LEVEL, NOTIFICATION_SWEEP_HOUR
from database import Base, engine
from auth import auth_router
from router import (
    records_router,
    expenses_router,
    expense_agent_router,
    wallet_router,
    profile_router,
)
from notifications import notifications_router, sweep_notifications
from agents import analytics_router, savings_router, advisory_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("finance_tracker")

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Personal Finance Tracker API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Daily notification sweep for every user
scheduler = BackgroundScheduler()
scheduler.add_job(
    sweep_notifications, "cron", hour=NOTIFICATION_SWEEP_HOUR, minute=0
)
if ENABLE_SCHEDULER:
    scheduler.start()
    logger.info("Notification sweep scheduled daily at %02d:00", NOTIFICATION_SWEEP_HOUR)

app.include_router(auth_router, prefix="/auth", tags=["authentication"])
app.include_router(profile_router, prefix="/api/profile", tags=["profile"])
app.include_router(records_router, prefix="/api/records", tags=["records"])
app.include_router(expenses_router, prefix="/api/expenses", tags=["expenses"])
app.include_router(wallet_router, prefix="/api/wallet", tags=["wallet"])
app.include_router(
    notifications_router, prefix="/api/notifications", tags=["notifications"]
)
app.include_router(analytics_router, prefix="/api/analytics", tags=["analytics"])
app.include_router(
    expense_agent_router, prefix="/api/agent/expense", tags=["expense agent"]
)
app.include_router(savings_router, prefix="/api/agent/savings", tags=["saving agent"])
app.include_router(
    advisory_router, prefix="/api/agent/advisory", tags=["advisory agent"]
)


@app.get("/")
def home():
    return {"message": "Welcome to Personal Finance Tracker API"}


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
