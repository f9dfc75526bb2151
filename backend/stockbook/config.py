# backend/stockbook/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockbook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockbook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Record store request ceilings: ids per membership filter, rows per page
    STORE_ID_CHUNK_SIZE = int(os.environ.get("STORE_ID_CHUNK_SIZE", "50"))
    STORE_PAGE_SIZE = int(os.environ.get("STORE_PAGE_SIZE", "1000"))

    # Dashboard: products at or below this stock count as low stock
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))
