import pytest

from habitflow.core.errors import ValidationError
from habitflow.settings import delete_setting, get_setting, get_settings, set_setting


def test_set_and_get(tmp_habitflow_dir):
    set_setting("theme", "dark")
    assert get_setting("theme") == "dark"
    assert get_setting("missing") is None


def test_set_overwrites(tmp_habitflow_dir):
    set_setting("theme", "dark")
    set_setting("theme", "light")
    assert get_settings() == {"theme": "light"}


def test_list_sorted(tmp_habitflow_dir):
    set_setting("b", "2")
    set_setting("a", "1")
    assert list(get_settings()) == ["a", "b"]


def test_delete(tmp_habitflow_dir):
    set_setting("theme", "dark")
    assert delete_setting("theme") is True
    assert delete_setting("theme") is False
    assert get_settings() == {}


def test_empty_key_rejected(tmp_habitflow_dir):
    with pytest.raises(ValidationError):
        set_setting("", "x")
