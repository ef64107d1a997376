"""Reaction bucket serialization and toggle rules.

Pure functions, no I/O. The serialized form is what conditional writes guard
on, so serialization is canonical: compact JSON, buckets in insertion order,
and an empty collection stored as null rather than "[]".
"""

import json

from chatstore.schemas.messages import Reaction


def parse_reactions(raw: str | None) -> list[Reaction]:
    """Decode the stored reactions column. Null or empty reads as no reactions."""
    if not raw:
        return []
    buckets = []
    for item in json.loads(raw):
        users = list(item.get("users") or [])
        buckets.append(Reaction(src=item["src"], count=len(users), users=users))
    return buckets


def serialize_reactions(reactions: list[Reaction]) -> str | None:
    """Encode reactions for storage; no buckets encodes as None."""
    if not reactions:
        return None
    return json.dumps(
        [reaction.model_dump() for reaction in reactions],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def toggle_reaction(reactions: list[Reaction], src: str, user_id: str) -> list[Reaction]:
    """Flip user_id's membership in the src bucket.

    Present -> removed (bucket dropped when it empties).
    Absent -> added (bucket appended when it is new).

    Toggling twice restores the users of every bucket but not always the
    bucket order: a bucket emptied by the first toggle is dropped, and the
    second toggle appends it at the end.
    """
    result: list[Reaction] = []
    found = False
    for reaction in reactions:
        users = list(reaction.users)
        if reaction.src == src:
            found = True
            if user_id in users:
                users.remove(user_id)
            else:
                users.append(user_id)
        if users:
            result.append(Reaction(src=reaction.src, count=len(users), users=users))

    if not found:
        result.append(Reaction(src=src, count=1, users=[user_id]))
    return result


def remove_reaction(reactions: list[Reaction], src: str, user_id: str) -> list[Reaction] | None:
    """Remove user_id from the src bucket.

    Returns:
        The updated buckets, or None if the user has not reacted with src
        (removal never turns into an add).
    """
    if not any(r.src == src and user_id in r.users for r in reactions):
        return None
    return toggle_reaction(reactions, src, user_id)
