"""Shared fixtures: an in-memory catalog database reachable through SQLAlchemy."""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

SCHEMA = (
    """
    CREATE TABLE brands (
        brand_id INTEGER PRIMARY KEY,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE series (
        series_id INTEGER PRIMARY KEY,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE products (
        product_id INTEGER PRIMARY KEY,
        external_id TEXT NOT NULL,
        sku TEXT,
        name TEXT NOT NULL,
        description TEXT,
        brand_id INTEGER REFERENCES brands(brand_id),
        series_id INTEGER REFERENCES series(series_id),
        unit TEXT,
        min_sale INTEGER,
        weight REAL,
        dimensions TEXT
    )
    """,
)

BRANDS = [
    {"brand_id": 1, "name": "IEK"},
    {"brand_id": 2, "name": "ABB"},
    {"brand_id": 3, "name": "Legrand"},
    {"brand_id": 4, "name": "Karat"},
]

SERIES = [{"series_id": 1, "name": "Basic"}]

PRODUCTS = [
    {"product_id": 1, "external_id": "ABC-1", "sku": "SKU-100", "name": "Автомат ABC", "description": "16А", "brand_id": 1},
    {"product_id": 2, "external_id": "ABC-10", "sku": "X-2", "name": "Выключатель", "description": None, "brand_id": 2},
    {"product_id": 3, "external_id": "X-777", "sku": "123-Z", "name": "Кабель 123", "description": "медный", "brand_id": None},
    {"product_id": 4, "external_id": "Z-9", "sku": "Z-9", "name": "Розетка", "description": "белая", "brand_id": 3},
    {"product_id": 5, "external_id": "Q-5", "sku": "Q-5", "name": "Hello lamp", "description": "LED", "brand_id": 4},
]


@pytest.fixture
def catalog_db():
    """SQLite catalog with five products; one shared connection for the whole test."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
        conn.execute(text("INSERT INTO brands (brand_id, name) VALUES (:brand_id, :name)"), BRANDS)
        conn.execute(text("INSERT INTO series (series_id, name) VALUES (:series_id, :name)"), SERIES)
        conn.execute(
            text(
                "INSERT INTO products (product_id, external_id, sku, name, description, brand_id, series_id)"
                " VALUES (:product_id, :external_id, :sku, :name, :description, :brand_id, 1)"
            ),
            PRODUCTS,
        )
    yield engine
    engine.dispose()


@pytest.fixture
def empty_db():
    """SQLite database without catalog tables: every query fails."""

    engine = create_engine("sqlite://", poolclass=StaticPool)
    yield engine
    engine.dispose()
