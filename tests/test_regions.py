import pytest

from gateway.datasource.regions import (
    WILAYAS,
    normalize_region_code,
    resolve_region,
)
from gateway.exceptions import ValidationError


def test_table_covers_all_wilayas():
    assert len(WILAYAS) == 58
    assert sorted(WILAYAS) == [f"{n:02d}" for n in range(1, 59)]


def test_boxes_are_south_west_north_east():
    for bbox in WILAYAS.values():
        assert bbox.south < bbox.north
        assert bbox.west < bbox.east


@pytest.mark.parametrize(
    "raw, expected",
    [("7", "07"), (7, "07"), ("16", "16"), (" 5 ", "05"), (None, "00")],
)
def test_normalize_region_code(raw, expected):
    assert normalize_region_code(raw) == expected


def test_resolve_region_returns_code_and_box():
    code, bbox = resolve_region("1")
    assert code == "01"
    assert bbox.as_overpass() == "35.4607,-1.3588,35.978,-0.5214"


@pytest.mark.parametrize("raw", [None, "", "0", "59", "abc", "100"])
def test_resolve_region_rejects_unknown_codes(raw):
    with pytest.raises(ValidationError) as exc_info:
        resolve_region(raw)

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == {
        "error": "Invalid wilaya number. Must be between 01 and 58."
    }


def test_table_is_read_only():
    with pytest.raises(TypeError):
        WILAYAS["99"] = WILAYAS["01"]
