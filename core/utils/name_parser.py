# core/utils/name_parser.py


def sort_key(full_name: str) -> str:
    """Generate a "Last, First" sort key from a full author name.

    Splits on the last space only, so "Agatha Christie" becomes
    "Christie, Agatha" and "J.R.R. Tolkien" becomes "Tolkien, J.R.R.".
    A name without a space is returned unchanged ("Madonna").

    Multi-part surnames are not recognised: "Ursula K. Le Guin" sorts as
    "Guin, Ursula K. Le". Renaming the author recomputes the key.
    """
    name = full_name.strip()
    last_space = name.rfind(' ')
    if last_space == -1:
        return name
    return f"{name[last_space + 1:]}, {name[:last_space]}"
