from __future__ import annotations

from copy import deepcopy
from typing import TYPE_CHECKING
from uuid import uuid4

from gearscout.domain.audit import AuditFlagKind, AuditPolicy, audit_matches
from gearscout.domain.model import Category, ReviewStatus
from tests.helpers.catalog import make_entry, make_posting, make_result

if TYPE_CHECKING:
    from gearscout.domain.lexicon import Lexicon


def test_clean_matches_raise_no_flags(lexicon: Lexicon) -> None:
    entry = make_entry("HD600", price_new=400.0)
    result = make_result(
        make_posting("[WTS] Sennheiser HD600 headphones $300"), entry=entry, price=300.0
    )

    report = audit_matches([result], {entry.id: entry}, lexicon=lexicon)

    assert report.total == 1
    assert report.matched == 1
    assert report.flags == []
    assert report.confidence == {"high": 1, "medium": 0, "low": 0}


def test_price_far_outside_band_is_flagged(lexicon: Lexicon) -> None:
    entry = make_entry("HD600", price_new=400.0)
    result = make_result(
        make_posting("[WTS] Sennheiser HD600 $5,000"), entry=entry, price=5000.0
    )

    report = audit_matches([result], {entry.id: entry}, lexicon=lexicon)

    [flag] = report.flags_of(AuditFlagKind.PRICE_OUTLIER)
    assert flag.entry_id == entry.id
    assert "above" in flag.detail


def test_bundle_adjusted_price_is_audited(lexicon: Lexicon) -> None:
    entry = make_entry("HD600", price_new=400.0)
    result = make_result(
        make_posting("[WTS] Sennheiser HD600 + Magni $5,000"),
        entry=entry,
        price=5000.0,
        adjusted_price=300.0,
        is_bundle=True,
    )

    report = audit_matches([result], {entry.id: entry}, lexicon=lexicon)

    assert report.flags_of(AuditFlagKind.PRICE_OUTLIER) == []


def test_missing_brand_and_contradicting_category_are_flagged(lexicon: Lexicon) -> None:
    entry = make_entry("Blessing 2", brand="Moondrop", category=Category.IN_EAR_MONITOR)
    result = make_result(make_posting("[WTS] Blessing 2 headphones $250"), entry=entry)

    report = audit_matches([result], {entry.id: entry}, lexicon=lexicon)

    assert {flag.kind for flag in report.flags} == {
        AuditFlagKind.BRAND_ABSENT,
        AuditFlagKind.CATEGORY_CONTRADICTION,
    }


def test_entry_behind_many_flagged_postings_is_suspect(lexicon: Lexicon) -> None:
    entry = make_entry("Blessing 2", brand="Moondrop", category=Category.IN_EAR_MONITOR)
    results = [
        make_result(
            make_posting(f"[WTS] Moondrop Blessing 2 headphones ${price}", permalink=f"p/{price}"),
            entry=entry,
            price=float(price),
        )
        for price in (200, 210, 220)
    ]

    report = audit_matches(results, {entry.id: entry}, lexicon=lexicon)

    [suspect] = report.suspects
    assert suspect.entry_id == entry.id
    assert suspect.flagged_postings == 3
    assert suspect.kinds == (AuditFlagKind.CATEGORY_CONTRADICTION,)


def test_suspect_threshold_is_configurable(lexicon: Lexicon) -> None:
    entry = make_entry("Blessing 2", brand="Moondrop", category=Category.IN_EAR_MONITOR)
    result = make_result(make_posting("[WTS] Moondrop Blessing 2 headphones $200"), entry=entry)

    report = audit_matches(
        [result], {entry.id: entry}, lexicon=lexicon, policy=AuditPolicy(suspect_flag_count=1)
    )

    assert len(report.suspects) == 1


def test_unmatched_rejected_and_orphaned_results(lexicon: Lexicon) -> None:
    entry = make_entry("HD600")
    unmatched = make_result(
        make_posting("[WTS] Mystery amp $100", permalink="p/1"),
        requires_manual_review=True,
    )
    rejected = make_result(
        make_posting(permalink="p/2", source="reddit:headphones"),
        entry=entry,
        review_status=ReviewStatus.REJECTED,
    )
    orphan = make_result(make_posting(permalink="p/3"), entry=make_entry("HD650"), confidence=0.5)

    report = audit_matches([unmatched, rejected, orphan], {entry.id: entry}, lexicon=lexicon)

    assert report.total == 3
    assert report.matched == 1
    assert report.unmatched == 2
    assert report.pending_review == 1
    assert report.confidence["low"] == 1
    assert report.by_source["reddit:avexchange"].total == 2
    assert report.by_source["reddit:headphones"].unmatched == 1
    [flag] = report.flags
    assert flag.kind is AuditFlagKind.MISSING_ENTRY
    assert flag.permalink == "p/3"


def test_audit_never_mutates_results(lexicon: Lexicon) -> None:
    entry = make_entry("HD600", price_new=400.0)
    result = make_result(
        make_posting("[WTS] Sennheiser HD600 $5,000"),
        entry=entry,
        price=5000.0,
        confidence=0.55,
        requires_manual_review=True,
    )
    before = deepcopy(vars(result))
    unknown_id = uuid4()

    audit_matches([result], {entry.id: entry, unknown_id: make_entry("HD650")}, lexicon=lexicon)

    assert vars(result) == before
