from fastapi import FastAPI
import logging
from dotenv import load_dotenv

# Load env vars before anything else
load_dotenv()

from finpro.core.config import settings
from finpro.database import engine, Base, SessionLocal
from finpro.models import User, BudgetAccount, Category, FixedExpense, Expense, IncomeEntry, UserStreak, UserBadge
from finpro.routers import finance, fixed_expenses, rewards, users
from finpro.services.db_service import seed_default_categories

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create tables on startup
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

@app.on_event("startup")
def init_data():
    db = SessionLocal()
    try:
        logger.info("Seeding default categories...")
        seed_default_categories(db)
    except Exception as e:
        db.rollback()
        logger.error(f"Error seeding categories: {e}")
    finally:
        db.close()

    logger.info(f"--- {settings.PROJECT_NAME} READY ---")

from fastapi.middleware.cors import CORSMiddleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(finance.router, prefix=f"{settings.API_V1_STR}/finance", tags=["finance"])
app.include_router(fixed_expenses.router, prefix=f"{settings.API_V1_STR}/fixed-expenses", tags=["fixed-expenses"])
app.include_router(rewards.router, prefix=f"{settings.API_V1_STR}/rewards", tags=["rewards"])
app.include_router(users.router, prefix=f"{settings.API_V1_STR}/users", tags=["users"])

@app.get("/health")
def health():
    return {"status": "ok", "project": settings.PROJECT_NAME}
