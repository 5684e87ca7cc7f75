from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

import pytest

from ordnance.domain.model import DataSource
from ordnance.domain.model.documents import (
    field_from_document,
    field_to_document,
    parse_timestamp,
    to_epoch_ms,
    weapon_from_document,
    weapon_to_document,
)
from ordnance.domain.reconciliation import SourcedRecord

if TYPE_CHECKING:
    from ordnance.domain.reconciliation import SchemaMerger


def test_epoch_milliseconds_round_trip() -> None:
    moment = datetime(2025, 1, 1, 12, 30, 15, 250000, tzinfo=UTC)

    assert to_epoch_ms(moment) == 1735734615250
    assert parse_timestamp(1735734615250) == moment


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2025-01-01T00:00:00Z", datetime(2025, 1, 1, tzinfo=UTC)),
        ("2025-01-01T02:00:00+02:00", datetime(2025, 1, 1, tzinfo=UTC)),
        ("2025-01-01T00:00:00", datetime(2025, 1, 1, tzinfo=UTC)),
        (datetime(2025, 1, 1), datetime(2025, 1, 1, tzinfo=UTC)),  # noqa: DTZ001
    ],
)
def test_parse_timestamp_accepts_iso_strings_and_datetimes(
    raw: object, expected: datetime
) -> None:
    assert parse_timestamp(raw) == expected


def test_parse_timestamp_keeps_foreign_offsets() -> None:
    offset = timezone(timedelta(hours=-5))

    parsed = parse_timestamp(datetime(2025, 1, 1, tzinfo=offset))

    assert parsed.utcoffset() == timedelta(hours=-5)


@pytest.mark.parametrize("raw", [None, "", "yesterday", True, object()])
def test_unparseable_timestamps_fall_back_or_fail(raw: object, now: datetime) -> None:
    assert parse_timestamp(raw, default=now) == now
    with pytest.raises(ValueError, match="Unparseable timestamp"):
        parse_timestamp(raw)


def test_weapon_document_round_trip(merger: SchemaMerger, now: datetime) -> None:
    records = [
        SourcedRecord(
            source=DataSource.CODARMORY,
            payload={
                "name": "MCW",
                "game": "MW3",
                "category": "AR",
                "stats": {"damage": 70, "range": 65},
                "attachments": {"optics": ["Slate Reflector"]},
                "imageUrl": "https://codarmory.com/img/mcw.png",
            },
            timestamp=now,
        ),
        SourcedRecord(
            source=DataSource.WIKI,
            payload={"name": "MCW", "game": "MW3", "stats": {"damage": 90}, "meta": {"tier": "A"}},
            timestamp=now - timedelta(days=2),
        ),
    ]
    weapon = merger.merge_entities(None, records).weapon

    document = weapon_to_document(weapon)

    assert document["stats"]["damage"]["hasConflict"] is True
    assert document["stats"]["damage"]["conflictDetails"]["resolution"] == "weighted_average"
    assert document["attachmentSlots"] == {"optic": ["Slate Reflector"]}
    assert document["createdAt"] == to_epoch_ms(now)
    assert "iconUrl" not in document
    assert weapon_from_document(document) == weapon


def test_field_document_uses_camel_case_keys(merger: SchemaMerger, now: datetime) -> None:
    weapon = merger.merge_entities(
        None,
        [
            SourcedRecord(
                source=DataSource.WZSTATS,
                payload={"name": "MCW", "game": "Warzone", "tier": "S", "usage": 4.5},
                timestamp=now,
            )
        ],
    ).weapon
    tier = weapon.meta["tier"]

    document = field_to_document(tier)

    assert set(document) == {
        "currentValue",
        "primarySource",
        "confidence",
        "lastUpdated",
        "hasConflict",
        "sources",
    }
    assert document["primarySource"] == "wzstats"
    assert document["sources"] == [
        {"source": "wzstats", "value": "S", "timestamp": to_epoch_ms(now)}
    ]
    assert field_from_document(document) == tier
