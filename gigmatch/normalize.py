from typing import Iterable, Optional, Set


def normalize_tag(tag: str) -> str:
    # Case only; whitespace is part of the tag.
    return tag.casefold()


def normalize_tags(tags: Optional[Iterable[str]]) -> Set[str]:
    if not tags:
        return set()
    return {normalize_tag(t) for t in tags}


def normalize_category(category: str) -> str:
    return category.casefold()

