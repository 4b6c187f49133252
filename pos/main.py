# pos/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pos.middleware import RequestIdMiddleware
from pos.errors import install_error_handlers
from pos.log import setup_logging
from pos.db import Base, engine
from pos.config import settings
import pos.models  # noqa: F401  (register tables on Base.metadata)

from pos.routers import auth, products, orders, reports, users, printjob

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="POS API", version="0.1.0")

@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

app.include_router(auth.router)
app.include_router(products.router)
app.include_router(products.admin_router)
app.include_router(orders.router)
app.include_router(reports.router)
app.include_router(users.router)
app.include_router(printjob.router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
