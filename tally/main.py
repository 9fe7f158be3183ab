import logging

from fastapi import FastAPI

from tally.config import settings
from tally.kernel.router import router as kernel_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Tally", version="0.1.0")
app.include_router(kernel_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "kernel": {
            "periods": "/kernel/periods",
            "targets": "/kernel/targets",
            "target_status": "/kernel/targets/{id}/status",
            "graph_chart": "/kernel/graphs/{id}/chart",
            "graph_table": "/kernel/graphs/{id}/table",
            "events": "/kernel/events",
            "validate": "/kernel/validate",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
