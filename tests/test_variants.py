# tests/test_variants.py
import uuid

import pytest
from fastapi import HTTPException

from commerce.models.product import (
    ParentRole,
    Product,
    Standalone,
    VariantRole,
    VariantStructureError,
    VariantType,
)
from commerce.schemas.product import VariantCreate


def _product(name: str) -> Product:
    return Product(
        name=name,
        slug=name.lower().replace(" ", "-"),
        sku=name.upper().replace(" ", "-"),
        price=10.0,
        manufacturer_id=uuid.uuid4(),
    )


# --- In-memory hierarchy ---


def test_new_product_is_standalone():
    product = _product("Drill")
    assert isinstance(product.role, Standalone)
    assert not product.has_variants()
    assert not product.is_variant()


def test_add_variant_assigns_positions_and_roles():
    parent = _product("Drill")
    first, second = _product("Drill 12V"), _product("Drill 18V")

    parent.add_variant(first)
    parent.add_variant(second)

    assert parent.variant_type == VariantType.PARENT
    assert parent.role == ParentRole(variant_ids=(first.id, second.id))
    assert first.role == VariantRole(parent_id=parent.id, position=1)
    assert second.variant_position == 2
    assert second.variant_type == VariantType.VARIANT


def test_variant_cannot_get_variants():
    parent, variant = _product("Drill"), _product("Drill 12V")
    parent.add_variant(variant)

    with pytest.raises(VariantStructureError):
        variant.add_variant(_product("Drill 12V Kit"))


def test_parent_cannot_become_variant():
    parent, variant = _product("Drill"), _product("Drill 12V")
    parent.add_variant(variant)

    with pytest.raises(VariantStructureError):
        _product("Tool Family").add_variant(parent)


def test_variant_cannot_move_to_another_parent():
    first_parent, second_parent = _product("Drill"), _product("Driver")
    variant = _product("Drill 12V")
    first_parent.add_variant(variant)

    with pytest.raises(VariantStructureError):
        second_parent.add_variant(variant)


def test_product_cannot_be_its_own_variant():
    product = _product("Drill")
    with pytest.raises(VariantStructureError):
        product.add_variant(product)


def test_remove_variant_renumbers_and_resets_parent():
    parent = _product("Drill")
    variants = [_product(f"Drill {v}V") for v in (12, 18, 24)]
    for variant in variants:
        parent.add_variant(variant)

    parent.remove_variant(variants[0])

    assert isinstance(variants[0].role, Standalone)
    assert variants[0].variant_type == VariantType.STANDALONE
    assert variants[0].variant_position is None
    assert [v.variant_position for v in parent.variants] == [1, 2]

    parent.remove_variant(variants[1])
    parent.remove_variant(variants[2])
    assert parent.variant_type == VariantType.STANDALONE
    assert isinstance(parent.role, Standalone)


def test_remove_unknown_variant_raises():
    with pytest.raises(VariantStructureError):
        _product("Drill").remove_variant(_product("Other"))


# --- Service level ---


def test_create_variant_inherits_from_parent(session, product_service, make_product):
    parent = make_product("Arc Welder", price=250.0, specifications={"voltage": "230V"})

    variant = product_service.create_variant(
        session, parent.id, VariantCreate(name="Arc Welder 160A")
    )

    assert variant.variant_type == VariantType.VARIANT
    assert variant.variant_position == 1
    assert variant.parent_id == parent.id
    assert variant.manufacturer_id == parent.manufacturer_id
    assert variant.price == 250.0
    assert variant.specifications == {"voltage": "230V"}
    head = parent.sku.rpartition("-")[0]
    assert variant.sku.startswith(f"{head}-V-")

    refreshed = product_service.get_product(session, parent.id)
    assert refreshed.variant_type == VariantType.PARENT
    assert [v.id for v in refreshed.variants] == [variant.id]


def test_variant_of_variant_is_rejected(session, product_service, make_product):
    parent = make_product("Arc Welder")
    variant = product_service.create_variant(session, parent.id, VariantCreate(name="Arc Welder 160A"))

    with pytest.raises(HTTPException) as exc:
        product_service.create_variant(session, variant.id, VariantCreate(name="Nested"))
    assert exc.value.status_code == 400


def test_parent_with_variants_cannot_be_deleted(session, product_service, make_product):
    parent = make_product("Arc Welder")
    product_service.create_variant(session, parent.id, VariantCreate(name="Arc Welder 160A"))

    with pytest.raises(HTTPException) as exc:
        product_service.delete_product(session, parent.id)
    assert exc.value.status_code == 400
    assert session.get(Product, parent.id) is not None


def test_deleting_variants_renumbers_siblings(session, product_service, make_product):
    parent = make_product("Arc Welder")
    created = [
        product_service.create_variant(session, parent.id, VariantCreate(name=f"Arc Welder {amps}A"))
        for amps in (160, 200, 250)
    ]

    product_service.delete_product(session, created[1].id)

    remaining = product_service.list_variants(session, parent.id)
    assert [v.name for v in remaining] == ["Arc Welder 160A", "Arc Welder 250A"]
    assert [v.variant_position for v in remaining] == [1, 2]

    product_service.delete_product(session, created[0].id)
    product_service.delete_product(session, created[2].id)

    assert product_service.get_product(session, parent.id).variant_type == VariantType.STANDALONE
    product_service.delete_product(session, parent.id)
    assert session.get(Product, parent.id) is None


def test_detach_variant_makes_it_standalone(session, product_service, make_product):
    parent = make_product("Arc Welder")
    variant = product_service.create_variant(session, parent.id, VariantCreate(name="Arc Welder 160A"))

    detached = product_service.detach_variant(session, parent.id, variant.id)

    assert detached.variant_type == VariantType.STANDALONE
    assert detached.parent_id is None
    assert detached.variant_position is None
    assert product_service.get_product(session, parent.id).variant_type == VariantType.STANDALONE


def test_slug_collisions_get_counters(session, product_service, make_product):
    first = make_product("Angle Grinder")
    second = make_product("Angle Grinder")

    assert first.slug == "angle-grinder"
    assert second.slug == "angle-grinder-1"
    assert first.sku != second.sku
