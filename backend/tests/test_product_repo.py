from decimal import Decimal

import pytest

from product_api.repositories.product_repo import (
    DuplicateKeyError,
    ProductRepository,
    RecordNotFoundError,
    StoreError,
)
from product_api.schemas.product_schema import ListProductFilter
from product_api.services.product_validation import validate_list_filter

COLUMNS = ("sku", "name", "description", "price", "stock", "category", "status", "image_url", "created_at", "updated_at")


def make(repo, db, **overrides):
    values = {
        "sku": "REPO-1",
        "name": "Repo Widget",
        "description": "plain",
        "price": Decimal("10.00"),
        "stock": 5,
        "category": "Tools",
        "status": "Active",
    }
    values.update(overrides)
    p = repo.create(values)
    db.commit()
    return p


def snapshot(p):
    return {c: getattr(p, c) for c in COLUMNS}


def listing(**kwargs):
    f = ListProductFilter(**kwargs)
    assert validate_list_filter(f) == []
    return f


def test_create_assigns_identity_and_timestamps(db):
    repo = ProductRepository(db)
    p = make(repo, db)
    assert p.id > 0
    fresh = repo.get_by_id(p.id)
    assert fresh.updated_at >= fresh.created_at
    assert fresh.price == Decimal("10.00")


def test_max_price_survives_round_trip(db):
    repo = ProductRepository(db)
    p = make(repo, db, price=Decimal("99999999.99"))
    assert repo.get_by_id(p.id).price == Decimal("99999999.99")


def test_duplicate_sku_is_distinguishable(db):
    repo = ProductRepository(db)
    make(repo, db, sku="DUP-1")
    with pytest.raises(DuplicateKeyError):
        make(repo, db, sku="DUP-1", name="Other")
    _, total = repo.list(listing(sku="DUP-1"))
    assert total == 1


def test_get_missing(db):
    repo = ProductRepository(db)
    with pytest.raises(RecordNotFoundError):
        repo.get_by_id(999999)
    with pytest.raises(RecordNotFoundError):
        repo.get_by_sku("NOPE")


def test_get_by_sku(db):
    repo = ProductRepository(db)
    p = make(repo, db, sku="FIND-ME")
    assert repo.get_by_sku("FIND-ME").id == p.id


def test_filter_category_and_min_price(db):
    repo = ProductRepository(db)
    make(repo, db, sku="A", category="Electronics", price=Decimal("100"))
    make(repo, db, sku="B", category="Electronics", price=Decimal("500"))
    make(repo, db, sku="C", category="Books", price=Decimal("100"))
    items, total = repo.list(listing(category="Electronics", min_price=Decimal("200")))
    assert total == 1
    assert [p.sku for p in items] == ["B"]


def test_filter_category_is_case_insensitive_exact(db):
    repo = ProductRepository(db)
    make(repo, db, sku="E1", category="Electronics")
    make(repo, db, sku="E2", category="Consumer Electronics")
    items, _ = repo.list(listing(category="electronics"))
    assert [p.sku for p in items] == ["E1"]


def test_name_and_sku_substring_match_ignores_case(db):
    repo = ProductRepository(db)
    make(repo, db, sku="TV-100", name="Smart Television")
    make(repo, db, sku="RAD-200", name="Radio")
    items, _ = repo.list(listing(name="TELEVISION"))
    assert [p.sku for p in items] == ["TV-100"]
    items, _ = repo.list(listing(sku="rad"))
    assert [p.sku for p in items] == ["RAD-200"]


def test_like_wildcards_in_input_are_literal(db):
    repo = ProductRepository(db)
    make(repo, db, sku="PCT-1", name="100% cotton")
    make(repo, db, sku="PCT-2", name="1000 threads")
    items, _ = repo.list(listing(name="100%"))
    assert [p.sku for p in items] == ["PCT-1"]


def test_status_and_max_price(db):
    repo = ProductRepository(db)
    make(repo, db, sku="S1", status="Active", price=Decimal("5"))
    make(repo, db, sku="S2", status="Inactive", price=Decimal("5"))
    make(repo, db, sku="S3", status="Inactive", price=Decimal("50"))
    items, total = repo.list(listing(status="Inactive", max_price=Decimal("5")))
    assert total == 1
    assert items[0].sku == "S2"


def test_pagination_and_sorting(db):
    repo = ProductRepository(db)
    for i in range(7):
        make(repo, db, sku=f"PG-{i}", price=Decimal(i + 1))
    items, total = repo.list(listing(limit=3, page=3, sort_by="price", sort_order="asc"))
    assert total == 7
    assert [p.sku for p in items] == ["PG-6"]
    items, _ = repo.list(listing(limit=3, page=1, sort_by="price", sort_order="desc"))
    assert [p.sku for p in items] == ["PG-6", "PG-5", "PG-4"]


def test_partial_update_touches_only_present_fields(db):
    repo = ProductRepository(db)
    p = make(repo, db)
    before = snapshot(repo.get_by_id(p.id))
    repo.update(p.id, {"name": "Renamed"})
    db.commit()
    after = snapshot(repo.get_by_id(p.id))
    assert after["name"] == "Renamed"
    assert after["updated_at"] > before["updated_at"]
    for column in COLUMNS:
        if column not in ("name", "updated_at"):
            assert after[column] == before[column], column


def test_empty_update_is_a_noop(db):
    repo = ProductRepository(db)
    p = make(repo, db)
    before = snapshot(repo.get_by_id(p.id))
    repo.update(p.id, {})
    db.commit()
    assert snapshot(repo.get_by_id(p.id)) == before
    # no row is addressed at all, so a missing id is not an error either
    repo.update(987654, {})


def test_update_missing_row(db):
    repo = ProductRepository(db)
    with pytest.raises(RecordNotFoundError):
        repo.update(987654, {"name": "ghost"})


def test_update_to_taken_sku(db):
    repo = ProductRepository(db)
    make(repo, db, sku="TAKEN")
    p = make(repo, db, sku="FREE")
    with pytest.raises(DuplicateKeyError):
        repo.update(p.id, {"sku": "TAKEN"})


def test_update_rejects_non_updatable_columns(db):
    repo = ProductRepository(db)
    p = make(repo, db)
    with pytest.raises(StoreError):
        repo.update(p.id, {"created_at": None})


def test_delete(db):
    repo = ProductRepository(db)
    pid = make(repo, db).id
    repo.delete(pid)
    db.commit()
    with pytest.raises(RecordNotFoundError):
        repo.get_by_id(pid)
    with pytest.raises(RecordNotFoundError):
        repo.delete(pid)


def test_ids_beyond_the_column_range_are_not_found(db):
    repo = ProductRepository(db)
    huge = 2**64
    with pytest.raises(RecordNotFoundError):
        repo.get_by_id(huge)
    with pytest.raises(RecordNotFoundError):
        repo.update(huge, {"name": "ghost"})
    with pytest.raises(RecordNotFoundError):
        repo.delete(huge)
