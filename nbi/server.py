"""nbi — HTTP API server.

Exposes:
  GET  /health            — liveness check
  POST /api/check         — probe a name across registries
  POST /api/domain        — check a name under several TLDs
  POST /api/domain/full   — check fully-qualified domains
  GET  /api/config        — read the saved registry selection
  POST /api/config        — replace the saved registry selection

Start with::

    python -m nbi serve --port 3000
    # or
    uvicorn nbi.server:app --host 127.0.0.1 --port 3000
"""

from __future__ import annotations

import logging
import os
import webbrowser

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from nbi import __version__
from nbi.config import ConfigError, load_config, load_config_or_default, save_config
from nbi.registry import RegistrySelection, check_all
from nbi.registry import domain as dns

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000

# ──────────────────────────────────────────────────────────────────
# FastAPI app
# ──────────────────────────────────────────────────────────────────

app = FastAPI(title="nbi", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ──────────────────────────────────────────────────────────────────
# Request / Response models
# ──────────────────────────────────────────────────────────────────

class RegistrySettings(BaseModel):
    npm: bool = True
    crates: bool = True
    pypi: bool = True
    brew: bool = True
    flatpak: bool = True
    debian: bool = True
    dev_domain: bool = True
    github: bool = True

    def to_selection(self) -> RegistrySelection:
        return RegistrySelection.from_dict(self.model_dump())


class CheckRequest(BaseModel):
    name: str = Field(min_length=1)
    registries: RegistrySettings | None = None


class DomainRequest(BaseModel):
    name: str = Field(min_length=1)
    tlds: list[str]


class FullDomainRequest(BaseModel):
    domains: list[str]


class SaveConfigRequest(BaseModel):
    registries: RegistrySettings


# ──────────────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


@app.post("/api/check")
async def check_availability(req: CheckRequest):
    # No registries in the request means the defaults: everything enabled.
    selection = req.registries.to_selection() if req.registries else RegistrySelection()
    results = await check_all(req.name, selection)
    return {"name": req.name, "results": [r.to_dict() for r in results]}


@app.post("/api/domain")
async def check_domain(req: DomainRequest):
    results = await dns.check_multiple_tlds(req.name, req.tlds)
    return {"name": req.name, "results": [r.to_dict() for r in results]}


@app.post("/api/domain/full")
async def check_full_domains(req: FullDomainRequest):
    results = await dns.check_domains(req.domains)
    return {"name": ", ".join(req.domains), "results": [r.to_dict() for r in results]}


@app.get("/api/config")
async def get_config():
    try:
        config = load_config()
    except ConfigError as exc:
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return config.to_dict()


@app.post("/api/config")
async def update_config(req: SaveConfigRequest):
    config = load_config_or_default()
    config.registries = req.registries.to_selection()
    try:
        save_config(config)
    except OSError as exc:
        logger.error("Saving config failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return {"success": True}


# ──────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────

def serve(host: str | None = None, port: int | None = None, open_browser: bool = False) -> None:
    import uvicorn

    host = host or os.environ.get("NBI_HOST", DEFAULT_HOST)
    port = port or int(os.environ.get("NBI_PORT", str(DEFAULT_PORT)))
    url = f"http://{host}:{port}"
    logger.info("Starting nbi server on %s", url)
    if open_browser and not webbrowser.open(url):
        logger.warning("Failed to open browser at %s", url)
    uvicorn.run("nbi.server:app", host=host, port=port, reload=False)


def main():
    logging.basicConfig(level=logging.INFO)
    serve()


if __name__ == "__main__":
    main()
