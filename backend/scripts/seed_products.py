#!/usr/bin/env python3
"""
Seed products from a JSON file (scripts/sample_products.json by default).

Entries that fail validation are reported and skipped; SKUs that already exist
are left untouched, so the script can be re-run safely.

Usage:
    python scripts/seed_products.py --file scripts/sample_products.json [--reset]
"""
import argparse
import json
import os
import sys
from decimal import Decimal, InvalidOperation

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from product_api.db import SessionLocal, init_db
from product_api.repositories.product_repo import ProductRepository
from product_api.schemas.product_schema import CreateProductIn
from product_api.services.product_validation import validate_create
from product_api.utils.transactions import unit_of_work

DEFAULT_SOURCE = os.path.join(os.path.dirname(__file__), "sample_products.json")


def _normalize_entry(entry: dict) -> tuple:
    """Return (CreateProductIn, image_url). Accepts a few looser spellings (title, quantity, image)."""
    raw_price = entry.get("price", entry.get("amount"))
    try:
        price = Decimal(str(raw_price)) if raw_price is not None else None
    except InvalidOperation:
        price = None
    return CreateProductIn(
        sku=str(entry.get("sku") or ""),
        name=entry.get("name") or entry.get("title") or "",
        description=entry.get("description"),
        price=price,
        stock=int(entry.get("stock", entry.get("quantity", 0)) or 0),
        category=entry.get("category") or "Uncategorized",
        status=entry.get("status") or "Active",
    ), entry.get("image_url") or entry.get("image")


def seed_from_file(path: str, reset: bool = False) -> int:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except ValueError as e:
            raise RuntimeError(f"Failed to parse JSON from {path}: {e}")

    if isinstance(data, dict):
        source_list = data.get("items", [])
    elif isinstance(data, list):
        source_list = data
    else:
        source_list = []

    init_db(reset=reset)

    db = SessionLocal()
    repo = ProductRepository(db)
    created = 0
    skipped = 0
    try:
        with unit_of_work(db):
            for entry in source_list:
                req, image_url = _normalize_entry(entry)
                errs = validate_create(req)
                if errs:
                    print(f"Skipping {req.sku or '<no sku>'}: {errs.to_dict()}")
                    skipped += 1
                    continue
                if repo.exists_sku(req.sku):
                    skipped += 1
                    continue
                values = req.model_dump()
                values["image_url"] = image_url
                repo.create(values)
                created += 1
        print(f"Seeded products: {created} (skipped {skipped})")
    finally:
        db.close()
    return created


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", default=DEFAULT_SOURCE, help="Path to a JSON list of products")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate the schema first")
    args = parser.parse_args()
    if not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    seed_from_file(args.file, reset=args.reset)
