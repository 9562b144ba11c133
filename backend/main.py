from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from device_manager import DeviceManager
from errors import UnsupportedIntent

manager = DeviceManager()

logging.basicConfig(
    level=logging.DEBUG if manager.config.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="HAP Bridge API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class IntentInput(BaseModel):
    intent: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class FulfillmentRequest(BaseModel):
    requestId: Optional[str] = None
    inputs: List[IntentInput] = Field(default_factory=list)


@app.on_event("startup")
async def startup_event() -> None:
    await manager.startup()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await manager.shutdown()


@app.get("/api/health")
async def health() -> Dict[str, str]:
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}


@app.post("/api/smarthome")
async def smarthome(request: FulfillmentRequest) -> Dict[str, Any]:
    try:
        return await manager.handle_request(request.model_dump())
    except UnsupportedIntent as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/api/services")
async def list_services() -> Dict[str, object]:
    return {"services": manager.services(), "stats": manager.stats()}


@app.post("/api/discover")
async def trigger_discovery() -> Dict[str, object]:
    result = await manager.discover()
    return {
        "instances": result.instances,
        "found": result.found,
        "removed": result.removed,
        "stats": manager.stats(),
    }


@app.post("/api/report-state")
async def report_state() -> Dict[str, bool]:
    sent = await manager.report_state()
    return {"sent": sent}


@app.exception_handler(Exception)
async def generic_exception_handler(_, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
