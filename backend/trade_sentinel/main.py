import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trade_sentinel.api.analysis import router as analysis_router
from trade_sentinel.config import settings

logging.basicConfig(level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/healthz")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(analysis_router)
