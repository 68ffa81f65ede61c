"""
Fire N concurrent creates for the same SKU at a running server and report the
outcome. Exactly one request should get 201; every other one should get 409.

Usage:
    python tools/concurrency_create.py --workers 20 --sku RACE-1
"""
import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import requests
import concurrent.futures
import argparse
from collections import Counter

BASE = os.environ.get("PRODUCT_API_BASE", "http://127.0.0.1:8000/api/v1")


def create_task(i, sku):
    payload = {
        "sku": sku,
        "name": f"Race product {i}",
        "price": "1.00",
        "stock": 1,
        "category": "Test",
        "status": "Active",
    }
    try:
        r = requests.post(f"{BASE}/product", json=payload, timeout=10)
        return (i, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def cleanup(sku):
    r = requests.get(f"{BASE}/product/sku/{sku}", timeout=10)
    if r.status_code == 200:
        requests.delete(f"{BASE}/product/{r.json()['data']['id']}", timeout=10)


def run_create_concurrent(workers, sku):
    print(f"Running create race: workers={workers}, sku={sku}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(create_task, i, sku) for i in range(workers)]
        results = [f.result() for f in futures]
    counts = Counter(r[1] for r in results)
    print("Status counts:", dict(counts))
    errors = [r for r in results if r[1] not in (201, 409)]
    for r in errors:
        print("Unexpected:", r)
    ok = counts.get(201, 0) == 1 and counts.get(409, 0) == workers - 1
    print("PASS" if ok else "FAIL")
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--workers", type=int, default=10)
    parser.add_argument("--sku", default="RACE-1")
    parser.add_argument("--keep", action="store_true", help="leave the created product in place")
    args = parser.parse_args()
    cleanup(args.sku)
    ok = run_create_concurrent(args.workers, args.sku)
    if not args.keep:
        cleanup(args.sku)
    sys.exit(0 if ok else 1)
