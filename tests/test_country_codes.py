import pytest

from jetset.utils.country_codes import COUNTRY_CODE_MAP, normalize_billing_address, normalize_country_code


@pytest.mark.parametrize(
    "value,expected",
    [
        ("USA", "US"),
        ("United Kingdom", "GB"),
        ("united kingdom", "GB"),
        ("  India ", "IN"),
        ("uae", "AE"),
        ("us", "US"),
        ("xx", "XX"),
        ("Atlantis", "ATLANTIS"),
    ],
)
def test_normalize_country_code(value, expected):
    assert normalize_country_code(value) == expected


def test_two_letter_input_is_never_remapped():
    # "UK" is an alias too, but two-letter input is taken as already ISO-2
    assert normalize_country_code("UK") == "UK"


def test_every_alias_maps_to_its_code():
    for alias, code in COUNTRY_CODE_MAP.items():
        if len(alias.strip()) == 2:
            continue
        assert normalize_country_code(alias) == code


def test_normalization_is_idempotent():
    for value in ["USA", "Germany", "fr", "Narnia", "Trinidad and Tobago"]:
        once = normalize_country_code(value)
        assert normalize_country_code(once) == once


@pytest.mark.parametrize("value", [None, "", 42])
def test_invalid_input_returns_empty(value):
    assert normalize_country_code(value) == ""


def test_billing_address_is_trimmed_and_country_normalized():
    out = normalize_billing_address(
        {"street": " 1 Main St ", "city": "Austin", "state": "TX", "postalCode": "73301 ", "country": "United States"}
    )
    assert out == {"street": "1 Main St", "city": "Austin", "state": "TX", "postalCode": "73301", "country": "US"}


def test_billing_address_missing_fields():
    with pytest.raises(ValueError) as exc:
        normalize_billing_address({"street": "1 Main St", "city": "", "country": "US"})
    assert "city" in str(exc.value)
    assert "postalCode" in str(exc.value)


def test_billing_address_must_be_an_object():
    with pytest.raises(ValueError):
        normalize_billing_address("1 Main St, Austin")
