import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orderdesk import config
from orderdesk.api import drafts, pricing, reference, spk

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Order Desk")

# CORS for the order form frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
app.include_router(drafts.router, prefix="/drafts", tags=["drafts"])
app.include_router(spk.router, prefix="/spk", tags=["spk"])
app.include_router(reference.router, prefix="/reference", tags=["reference"])


@app.get("/")
async def root():
    return {"status": "ok", "service": "orderdesk"}
