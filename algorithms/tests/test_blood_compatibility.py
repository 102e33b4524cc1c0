import pytest

from algorithms.blood_compatibility import (
    BLOOD_TYPES,
    compatible_donor_types,
    get_compatible_recipients,
    is_compatible,
)


@pytest.mark.parametrize("blood_type", BLOOD_TYPES)
def test_every_type_can_receive_from_itself_first(blood_type):
    assert compatible_donor_types(blood_type)[0] == blood_type


@pytest.mark.parametrize("blood_type", BLOOD_TYPES)
def test_o_negative_donates_to_everyone(blood_type):
    assert "O-" in compatible_donor_types(blood_type)
    assert is_compatible("O-", blood_type)


def test_ab_positive_receives_from_all_types():
    assert sorted(compatible_donor_types("AB+")) == sorted(BLOOD_TYPES)


def test_o_negative_receives_only_o_negative():
    assert compatible_donor_types("O-") == ["O-"]


def test_no_duplicates_in_compatible_lists():
    for blood_type in BLOOD_TYPES:
        types = compatible_donor_types(blood_type)
        assert len(types) == len(set(types))


def test_unknown_type_is_passed_through():
    assert compatible_donor_types("C+") == ["C+"]


def test_lookup_is_case_and_space_insensitive():
    assert compatible_donor_types(" ab- ") == ["AB-", "A-", "B-", "O-"]


def test_donor_and_recipient_tables_agree():
    for donor in BLOOD_TYPES:
        for recipient in BLOOD_TYPES:
            assert is_compatible(donor, recipient) == (donor in compatible_donor_types(recipient))


def test_recipients_of_unknown_donor_type_is_empty():
    assert get_compatible_recipients("X") == []
    assert not is_compatible("X", "A+")
