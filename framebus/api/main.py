from __future__ import annotations

from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException

from framebus.host.bus import HostBus


def create_app(bus: Optional[HostBus] = None) -> FastAPI:
    app = FastAPI(title="framebus host API")

    def _bus() -> HostBus:
        if bus is None:
            raise HTTPException(status_code=503, detail="host bus not attached")
        return bus

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/status")
    def status() -> dict:
        b = _bus()
        return {
            "state": b.gate.state.value,
            "ready": b.gate.is_ready,
            "pending": b.gate.pending_count,
            "in_flight": b.in_flight,
        }

    @app.post("/push", status_code=202)
    async def push(data: dict[str, Any] = Body(...)) -> dict:
        b = _bus()
        b.push(data)
        return {"queued": not b.gate.is_ready}

    return app


app = create_app()
