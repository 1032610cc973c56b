from __future__ import annotations

from typing import Any, Dict

from .errors import ConfigError, NotFoundError, StartError
from .syntax import PSEUDO_STATE
from .transition import TERMINAL

try:
    from fastapi import FastAPI, HTTPException
except ImportError:  # optional dependency
    FastAPI = None
    HTTPException = Exception


def create_app(manager: Any):
    if FastAPI is None:
        raise RuntimeError("fastapi is not installed. Install with: pip install -e '.[api]'")

    app = FastAPI()

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/instances", status_code=201)
    async def start_instance(body: Dict[str, Any]):
        if not isinstance(body.get("name"), str) or not body["name"]:
            raise HTTPException(status_code=422, detail="'name' must be a non-empty string")
        try:
            actor = await manager.start(body.get("fsm_type", ""), body.get("name"), body.get("payload"))
        except ConfigError as e:
            raise HTTPException(status_code=404, detail=e.what)
        except StartError as e:
            raise HTTPException(status_code=409, detail=e.what)
        return {"name": actor.name, "state": actor.run_state.current}

    @app.post("/instances/{name}/events", status_code=202)
    async def send_event(name: str, body: Dict[str, Any]):
        try:
            manager.send(name, body.get("event"), body.get("payload"))
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=e.what)
        return {"status": "sent"}

    @app.get("/instances/{name}")
    async def get_state(name: str):
        try:
            rs = await manager.state(name)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=e.what)
        return {"current": rs.current, "payload": rs.payload, "history": list(rs.history)}

    @app.get("/instances/{name}/allowed/{state}")
    async def get_allowed(name: str, state: str):
        target = TERMINAL if state == PSEUDO_STATE else state
        try:
            return {"allowed": await manager.allowed(name, target)}
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=e.what)

    @app.get("/instances/{name}/responds/{event}")
    async def get_responds(name: str, event: str):
        try:
            return {"responds": await manager.responds(name, event)}
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=e.what)

    @app.delete("/instances/{name}")
    async def stop_instance(name: str):
        try:
            await manager.stop(name)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=e.what)
        return {"status": "stopped"}

    return app
