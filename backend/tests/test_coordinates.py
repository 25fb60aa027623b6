from __future__ import annotations

import pytest

from app.services.coordinates import IdentityNad83Transform, ensure_nad83, normalize_zip


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("275135123", "27513-5123"),
        ("27513", "27513"),
        ("275", "275"),
        ("27513-5123", "27513-5123"),
        (" 27513 ", "27513"),
        ("2751351234567", "27513-5123"),
        (27513, "27513"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_zip(raw, expected) -> None:
    assert normalize_zip(raw) == expected


def test_normalize_zip_is_idempotent() -> None:
    for raw in ("275135123", "27513", "275", "2751-3"):
        once = normalize_zip(raw)
        assert normalize_zip(once) == once


def test_identity_transform_returns_input() -> None:
    assert IdentityNad83Transform().transform(35.5, -78.25) == (35.5, -78.25)
    nad83 = ensure_nad83(35.5, -78.25)
    assert nad83.latitude_nad83 == 35.5
    assert nad83.longitude_nad83 == -78.25


def test_ensure_nad83_uses_supplied_transform() -> None:
    class Shift:
        def transform(self, lat: float, lon: float) -> tuple[float, float]:
            return lat + 0.001, lon - 0.001

    nad83 = ensure_nad83(10.0, 20.0, Shift())
    assert nad83.latitude_nad83 == pytest.approx(10.001)
    assert nad83.longitude_nad83 == pytest.approx(19.999)
