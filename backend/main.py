# backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from errors import InventoryError
from utils.logging_setup import configure_logging

from routes.auth import router as auth_router
from routes.admin import router as admin_router
from routes.logs import router as logs_router
from routes.categories import router as categories_router
from routes.locations import router as locations_router
from routes.suppliers import router as suppliers_router
from routes.customers import router as customers_router
from routes.products import router as products_router
from routes.stock import router as stock_router
from routes.transactions import router as transactions_router
from routes.purchase_orders import router as purchase_orders_router
from routes.sales_orders import router as sales_orders_router
from routes.notifications import router as notifications_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Stock ledger API started")
    yield
    logger.info("Stock ledger API stopped")


app = FastAPI(title="Stock Ledger API", version="1.0.0", lifespan=lifespan)

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Business errors from the services carry their own status code
@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


# Router registration
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(logs_router)
app.include_router(categories_router)
app.include_router(locations_router)
app.include_router(suppliers_router)
app.include_router(customers_router)
app.include_router(products_router)
app.include_router(stock_router)
app.include_router(transactions_router)
app.include_router(purchase_orders_router)
app.include_router(sales_orders_router)
app.include_router(notifications_router)


@app.get("/")
def read_root():
    return {"message": "Stock Ledger API is running"}
