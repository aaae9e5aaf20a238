from decimal import Decimal

import pytest

from invoicedesk.app.services.amount_words import amount_to_words, number_to_words


def test_zero_amount():
    assert amount_to_words(0) == "Zero Rupees Only"


def test_one_lakh():
    assert amount_to_words(100000) == "One Lakh Rupees Only"


def test_lakh_grouping_with_paise():
    assert amount_to_words(Decimal("1234567.89")) == (
        "Twelve Lakh Thirty Four Thousand Five Hundred and Sixty Seven Rupees and Eighty Nine Paise Only"
    )


def test_crore_grouping():
    assert amount_to_words(25000000) == "Two Crore Fifty Lakh Rupees Only"


@pytest.mark.parametrize(
    "number, words",
    [
        (7, "Seven"),
        (19, "Nineteen"),
        (40, "Forty"),
        (99, "Ninety Nine"),
        (100, "One Hundred"),
        (105, "One Hundred and Five"),
        (1000, "One Thousand"),
        (1011, "One Thousand and Eleven"),
        (250000, "Two Lakh Fifty Thousand"),
    ],
)
def test_number_to_words(number, words):
    assert number_to_words(number) == words


def test_and_only_after_higher_group():
    assert " and " not in number_to_words(85)
    assert number_to_words(300) == "Three Hundred"


def test_paise_rounding_carries_into_rupees():
    assert amount_to_words(Decimal("9.999")) == "Ten Rupees Only"
    assert amount_to_words("10.505") == "Ten Rupees and Fifty One Paise Only"


def test_negative_amount():
    assert amount_to_words(-250) == "Minus Two Hundred and Fifty Rupees Only"


def test_float_input():
    assert amount_to_words(1180.5) == "One Thousand One Hundred and Eighty Rupees and Fifty Paise Only"


@pytest.mark.parametrize("amount", [0, 1, 12.5, 99999, 123456789.01])
def test_always_terminated_by_only(amount):
    assert amount_to_words(amount).endswith(" Only")
