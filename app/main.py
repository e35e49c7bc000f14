import logging
from fastapi import FastAPI
from app.core.config import get_settings
from app.db.database import Base, engine
from app.api.v1.routes.ledger import router as ledger_router

logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Group Ledger Service",
    description="Computes group balances and the fewest payments needed to settle them",
    version="1.0.0"
)

app.include_router(ledger_router)

@app.get("/")
def read_root():
    return {"message": "Group Ledger Service API", "version": "1.0.0"}

@app.get("/health")
def health_check():
    return {"status": "healthy"}
