"""Tests for generation-level compatibility expansion."""

import pytest

from spring_catalog.models.sync import OutcomeKind
from spring_catalog.services.compatibility_matrix import expand, refresh_matrix
from spring_catalog.services.version_reconciler import reconcile


def _seed(store, slug, *versions):
    for v in versions:
        reconcile(store, slug, v)


def _created(outcomes):
    return sum(1 for o in outcomes if o.kind == OutcomeKind.CREATED)


def test_expand_links_every_pair_once(store):
    _seed(store, "spring-boot", "3.5.6", "3.5.7", "3.4.11")
    _seed(store, "spring-batch", "5.2.2", "5.2.3", "5.1.2")

    outcomes = expand(store, "spring-boot", 3, 5, "spring-batch", 5, 2)
    assert _created(outcomes) == 4
    assert store.compatibility_exists("spring-boot", "3.5.6", "spring-batch", "5.2.3")
    assert not store.compatibility_exists("spring-boot", "3.4.11", "spring-batch", "5.1.2")

    rerun = expand(store, "spring-boot", 3, 5, "spring-batch", 5, 2)
    assert _created(rerun) == 0
    assert all(o.kind == OutcomeKind.UNCHANGED for o in rerun)
    assert len(store.list_compatibility("spring-boot")) == 4


def test_expand_with_missing_side_creates_nothing(store):
    _seed(store, "spring-boot", "3.5.7")
    assert expand(store, "spring-boot", 3, 5, "spring-batch", 5, 2) == []


def test_refresh_matrix_picks_up_new_versions(store):
    _seed(store, "spring-boot", "3.5.7")
    _seed(store, "spring-batch", "5.2.x")
    assert _created(expand(store, "spring-boot", 3, 5, "spring-batch", 5, 2)) == 1

    _seed(store, "spring-boot", "3.5.8")
    _seed(store, "spring-batch", "5.2.3", "5.2.4")
    outcomes = refresh_matrix(store)
    # 2 anchors x 3 targets, one of which already existed
    assert _created(outcomes) == 5
    assert len(store.list_compatibility("spring-boot")) == 6
    assert _created(refresh_matrix(store)) == 0


@pytest.mark.parametrize(
    ("anchors", "targets", "expected"),
    [
        (("3.5.0", "3.5.1"), ("5.2.0", "5.2.1"), 4),
        (("3.5.0", "3.5.1", "3.5.2"), ("5.2.0", "5.2.1"), 6),
    ],
)
def test_expand_is_the_full_cross_product(store, anchors, targets, expected):
    _seed(store, "spring-boot", *anchors)
    _seed(store, "spring-batch", *targets)

    assert _created(expand(store, "spring-boot", 3, 5, "spring-batch", 5, 2)) == expected
    assert len(store.list_compatibility("spring-boot")) == expected
    assert _created(expand(store, "spring-boot", 3, 5, "spring-batch", 5, 2)) == 0
