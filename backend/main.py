# backend/main.py
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from config import settings
from database import init_db
from utils.logging_config import configure_logging

# Routers
from routes.batches import router as batches_router
from routes.locations import router as locations_router
from routes.logs import router as logs_router
from routes.purchase_orders import router as purchase_orders_router
from routes.reorder import router as reorder_router
from routes.reports import router as reports_router
from routes.responses import request_validation_handler
from routes.sales import router as sales_router
from routes.stock import router as stock_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

init_db()

app = FastAPI(title="Stock Ledger API", version="1.0.0")
app.add_exception_handler(RequestValidationError, request_validation_handler)

# Frontend URL comes from the environment in deployed setups
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

app.include_router(stock_router)
app.include_router(locations_router)
app.include_router(batches_router)
app.include_router(purchase_orders_router)
app.include_router(sales_router)
app.include_router(reorder_router)
app.include_router(reports_router)
app.include_router(logs_router)

logger.info("Stock Ledger API started (%s)", settings.APP_ENV)


@app.get("/")
def read_root():
    return {"message": "Stock Ledger API is running"}
