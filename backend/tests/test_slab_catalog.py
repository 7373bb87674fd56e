import uuid

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from courier_billing.services.errors import NotFound, ValidationError
from courier_billing.services.slab_catalog import list_enumeration, list_weight_slabs, upsert_enumeration


def test_weight_resolves_to_the_covering_slab(db, catalog, seeded):
    assert catalog.find_weight_slab(db, 750).name == "Medium"
    assert catalog.find_weight_slab(db, 0).name == "Light"


def test_slab_ranges_are_half_open(db, catalog, seeded):
    assert catalog.find_weight_slab(db, 499).name == "Light"
    assert catalog.find_weight_slab(db, 500).name == "Medium"
    assert catalog.find_weight_slab(db, 5000) is None


def test_overlapping_slab_is_rejected(db, catalog, seeded):
    with pytest.raises(ValidationError) as excinfo:
        catalog.create_weight_slab(db, "Overlap", 900, 1200)

    assert excinfo.value.details["conflicting_slab_id"] in {str(seeded.medium.id), str(seeded.heavy.id)}
    assert len(list_weight_slabs(db)) == 3


def test_inverted_range_is_rejected(db, catalog):
    with pytest.raises(ValidationError):
        catalog.create_weight_slab(db, "Backwards", 500, 100)


def test_cache_serves_slabs_until_a_write_invalidates_it(db, catalog, seeded):
    assert catalog.find_weight_slab(db, 6000) is None

    catalog.create_weight_slab(db, "Bulk", 5000, 20000)

    assert catalog.find_weight_slab(db, 6000).name == "Bulk"


def test_deactivated_slab_stops_matching(db, catalog, seeded):
    catalog.deactivate_weight_slab(db, seeded.medium.id)

    assert catalog.find_weight_slab(db, 750) is None
    assert catalog.get_weight_slab(db, seeded.medium.id) is None
    assert len(list_weight_slabs(db, include_inactive=True)) == 3


def test_deactivated_range_can_be_reused(db, catalog, seeded):
    catalog.deactivate_weight_slab(db, seeded.medium.id)

    slab = catalog.create_weight_slab(db, "Medium v2", 500, 1000)

    assert catalog.find_weight_slab(db, 750).id == slab.id


def test_update_unknown_slab_is_not_found(db, catalog):
    with pytest.raises(NotFound):
        catalog.update_weight_slab(db, uuid.uuid4(), "Ghost", 0, 10)


def test_enumeration_upsert_replaces_by_code(db):
    first = upsert_enumeration(db, "modes", "air", "Air")
    second = upsert_enumeration(db, "modes", "AIR", "Air Express")

    assert first.created is True
    assert second.created is False
    assert second.row.id == first.row.id
    assert [m.title for m in list_enumeration(db, "modes")] == ["Air Express"]


def test_unknown_enumeration_kind(db):
    with pytest.raises(NotFound):
        list_enumeration(db, "zones")


@settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(
    bounds=st.lists(st.integers(min_value=0, max_value=10000), min_size=2, max_size=10, unique=True),
    weight=st.integers(min_value=0, max_value=10000),
)
def test_at_most_one_active_slab_covers_any_weight(db, catalog, bounds, weight):
    catalog.cache.invalidate()
    for slab in list_weight_slabs(db):
        catalog.deactivate_weight_slab(db, slab.id)

    bounds = sorted(bounds)
    for index, (low, high) in enumerate(zip(bounds, bounds[1:])):
        catalog.create_weight_slab(db, f"S{index}", low, high)
        # Any attempt to straddle an existing slab fails
        with pytest.raises(ValidationError):
            catalog.create_weight_slab(db, f"X{index}", low, high)

    matches = [s for s in catalog.active_weight_slabs(db) if s.contains(weight)]
    assert len(matches) <= 1
    expected = bounds[0] <= weight < bounds[-1]
    assert (catalog.find_weight_slab(db, weight) is not None) == expected
