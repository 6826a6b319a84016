import typing


def english_enumerate(
    items: typing.Iterable[str], conj: str = "or", quote: typing.Optional[str] = '"'
) -> str:
    """
    Joins ``items`` in an English-like manner, i.e. ``"a", "b", or "c"``.
    """
    if quote is not None:
        items = [f"{quote}{x}{quote}" for x in items]
    else:
        items = list(items)

    if not items:
        return ""
    elif len(items) == 1:
        return items[0]
    elif len(items) == 2:
        return f"{items[0]} {conj} {items[1]}"
    else:
        return ", ".join(items[:-1]) + f", {conj} {items[-1]}"
