import pytest

from bracketflow.core.brackets import is_canonical
from bracketflow.tax.presets import (
    UnknownPresetError,
    describe_preset,
    get_preset,
    has_preset,
    list_presets,
    register_preset,
)


def test_builtin_presets_are_canonical():
    assert {"mfj-2018", "single-2024", "mfj-2024"} <= set(list_presets())
    for name in list_presets():
        assert is_canonical(get_preset(name))


def test_lookup_is_case_insensitive():
    assert get_preset(" MFJ-2018 ") == get_preset("mfj-2018")
    assert has_preset("Single-2024")
    assert "2018" in describe_preset("mfj-2018")


def test_unknown_preset_raises_key_error():
    with pytest.raises(UnknownPresetError):
        get_preset("nowhere-1999")
    with pytest.raises(KeyError):
        describe_preset("nowhere-1999")


def test_register_preset_normalizes_rows():
    register_preset("flat-test", [(None, 0.2), (1000, 0.0)], "flat test schedule")
    rows = get_preset("flat-test")
    assert [row.wire_upper for row in rows] == [1000.0, None]
