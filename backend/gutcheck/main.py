import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Your configuration and DB
from gutcheck.config import settings
from gutcheck.core.db import init_db, close_db
from gutcheck.core.bootstrap import check_runtime_config
from gutcheck.core.errors import GutCheckError

from gutcheck.api.v1.routers import auth, ideas

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(GutCheckError)
async def gutcheck_error_handler(request: Request, exc: GutCheckError):
    if exc.status_code >= 500:
        logger.warning("[api] %s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.to_dict()})

@app.on_event("startup")
async def on_startup():
    check_runtime_config()
    await init_db(generate_schemas=settings.db_generate_schemas)

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(ideas.router, prefix="/api/v1")

@app.get("/healthz")
def healthz():
    return {"ok": True}
