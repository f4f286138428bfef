import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from config import settings
from database import init_db
from routers import mappings, statements, transactions
from services.merchant_classifier import get_classifier

# ─── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("Tally")

# ─── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Bank statement ingestion: PDF transaction extraction and merchant classification",
)

# ─── CORS ─────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─── Routers ──────────────────────────────────────────────────────────────────

app.include_router(statements.router, prefix=settings.API_PREFIX, tags=["Statements"])
app.include_router(transactions.router, prefix=settings.API_PREFIX, tags=["Transactions"])
app.include_router(mappings.router, prefix=settings.API_PREFIX, tags=["Merchant Mappings"])

# ─── Events ───────────────────────────────────────────────────────────────────

@app.on_event("startup")
def startup():
    logger.info("🧾 Tally starting up...")
    init_db()
    logger.info("✅ Database initialized")
    if settings.SEED_DEFAULT_MAPPINGS:
        added = get_classifier().store.seed_defaults()
        if added:
            logger.info(f"🏷️  Seeded {added} merchant mappings")


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.PROJECT_NAME, "version": settings.VERSION}
