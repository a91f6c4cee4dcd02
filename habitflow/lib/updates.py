from collections.abc import Mapping


def set_clause(assignments: Mapping[str, object]) -> tuple[str, list[object]]:
    """
    Build the SET clause of a partial update.
    Keys are column names taken from a closed update request, never from caller input.
    Returns ("a = ?, b = ?", [value_a, value_b]).
    """
    columns = list(assignments)
    return ", ".join(f"{col} = ?" for col in columns), [assignments[col] for col in columns]
