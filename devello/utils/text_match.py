"""
Text helpers for the catalog: slugs and fuzzy product search
"""
import re
import unicodedata

SEARCH_THRESHOLD = 75


def normalize_text(s: str) -> str:
    """Lowercase, strip accents, collapse whitespace"""
    if not s:
        return ""
    s = unicodedata.normalize('NFD', s.strip().lower())
    s = ''.join(ch for ch in s if unicodedata.category(ch) != 'Mn')
    return ' '.join(s.split())


def slugify(name: str) -> str:
    """'French Casement Window 36"' -> 'french-casement-window-36'"""
    return re.sub(r"[^a-z0-9]+", "-", normalize_text(name)).strip("-")


def _singular(token: str) -> str:
    # doors -> door, glasses -> glass, fixtures -> fixture
    if token.endswith("sses") and len(token) > 5:
        return token[:-2]
    if token.endswith("s") and not token.endswith("ss") and len(token) > 3:
        return token[:-1]
    return token


def _edit_distance(a: str, b: str) -> int:
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        curr = [i]
        for j, cb in enumerate(b, start=1):
            curr.append(min(curr[-1] + 1, prev[j] + 1, prev[j - 1] + (ca != cb)))
        prev = curr
    return prev[-1]


def similarity_score(query: str, target: str) -> int:
    """
    0-100 match score of a search query against a product name.
    100 exact, 90 substring, 85 strong token overlap, 75 partial overlap,
    otherwise edit-distance similarity.
    """
    q = normalize_text(query)
    t = normalize_text(target)
    if not q or not t:
        return 0
    if q == t:
        return 100
    if q in t:
        return 90 if len(q) >= 3 else 80

    q_tokens = {_singular(tok) for tok in q.split()}
    t_tokens = {_singular(tok) for tok in t.split()}
    overlap = len(q_tokens & t_tokens) / len(q_tokens | t_tokens)
    if overlap >= 0.66 or q_tokens <= t_tokens or t_tokens <= q_tokens:
        return 85
    if overlap >= 0.4:
        return 75

    longest = max(len(q), len(t))
    return int(100 * (1 - _edit_distance(q, t) / longest))


def matches_search(query: str, *fields) -> bool:
    """True when any of the fields scores at least SEARCH_THRESHOLD"""
    return any(similarity_score(query, field) >= SEARCH_THRESHOLD for field in fields if field)
