import pytest
from core.utils.name_parser import sort_key

@pytest.mark.parametrize("name,expected", [
    ("Agatha Christie", "Christie, Agatha"),
    ("F. Scott Fitzgerald", "Fitzgerald, F. Scott"),
    ("J.R.R. Tolkien", "Tolkien, J.R.R."),
    ("Madonna", "Madonna"),
    ("Ursula K. Le Guin", "Guin, Ursula K. Le"),
])
def test_sort_key_splits_on_last_space(name, expected):
    assert sort_key(name) == expected

def test_sort_key_ignores_surrounding_whitespace():
    assert sort_key("  Stephen King ") == "King, Stephen"
