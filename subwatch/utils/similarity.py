"""String similarity utilities for subscription duplicate detection.

Provides:
- Levenshtein edit distance
- Normalized similarity score (0.0 - 1.0)
- Service name normalization through a known-alias table
"""

from typing import List, Tuple

# Ordered alias table. Substring matches are resolved in this order:
# the first alias that matches wins.
SERVICE_ALIASES: Tuple[Tuple[str, str], ...] = (
    ("netflix", "Netflix"),
    ("nflx", "Netflix"),
    ("spotify", "Spotify"),
    ("spot", "Spotify"),
    ("amazon prime", "Amazon Prime"),
    ("prime video", "Amazon Prime"),
    ("amazon video", "Amazon Prime"),
    ("prime", "Amazon Prime"),
    ("disney+", "Disney+"),
    ("disney plus", "Disney+"),
    ("apple music", "Apple Music"),
    ("itunes", "Apple"),
    ("icloud", "iCloud"),
    ("icloud+", "iCloud"),
    ("apple one", "Apple One"),
    ("youtube premium", "YouTube Premium"),
    ("youtube music", "YouTube Music"),
    ("yt premium", "YouTube Premium"),
    ("yt music", "YouTube Music"),
    ("hbo max", "HBO Max"),
    ("hbo", "HBO"),
    ("hulu", "Hulu"),
    ("paramount+", "Paramount+"),
    ("paramount plus", "Paramount+"),
)


def levenshtein_distance(a: str, b: str) -> int:
    """Calculate the Levenshtein edit distance between two strings.

    Uses the full dynamic-programming matrix. Comparison is case-sensitive;
    callers lowercase beforehand when needed.

    Args:
        a: First string.
        b: Second string.

    Returns:
        Minimum number of insertions, deletions and substitutions.
    """
    rows = len(b) + 1
    cols = len(a) + 1
    matrix: List[List[int]] = [[0] * cols for _ in range(rows)]

    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[j - 1] == b[i - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,  # deletion
                matrix[i][j - 1] + 1,  # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[len(b)][len(a)]


def calculate_string_similarity(a: str, b: str) -> float:
    """Calculate similarity between two strings.

    Args:
        a: First string.
        b: Second string.

    Returns:
        1.0 for identical strings, 0.0 if either is empty, otherwise
        (max_len - distance) / max_len on the lowercased strings.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    distance = levenshtein_distance(a.lower(), b.lower())
    max_length = max(len(a), len(b))

    return (max_length - distance) / max_length


def normalize_service_name(name: str) -> str:
    """Normalize a service name using the known-alias table.

    Lookup order:
    1. Exact (case-insensitive) alias match
    2. Substring containment in either direction, first alias wins
    3. Fallback: original name with its first letter capitalized

    Args:
        name: Service name as entered or extracted from an SMS.

    Returns:
        Canonical service name.
    """
    if not name:
        return ""

    lowercase_name = name.lower()

    for alias, normalized in SERVICE_ALIASES:
        if lowercase_name == alias:
            return normalized

    for alias, normalized in SERVICE_ALIASES:
        if alias in lowercase_name or lowercase_name in alias:
            return normalized

    return name[0].upper() + name[1:]
