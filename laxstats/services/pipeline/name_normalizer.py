"""Name normalization for cross-league player identity matching.

Handles common variations across league sources:
- Case: "LYLE THOMPSON" → "lyle thompson"
- Accents: "José García" → "jose garcia"
- Letters without a decomposition: "Bjørn Ødegård" → "bjorn odegard"
- Punctuation: "O'Brien" → "obrien", "Smith-Jones" → "smithjones"
- Extra spaces: "Kyle   Harrison" → "kyle harrison"

Suffixes are kept ("Jr" stays), so a father and son with the same name and
suffix-free records still need a date of birth to tell them apart.
"""
import re
import unicodedata

# Letters NFD cannot split into base + combining mark
SPECIAL_CHARS = {
    'ø': 'o', 'Ø': 'o',
    'æ': 'ae', 'Æ': 'ae',
    'å': 'a', 'Å': 'a',
    'ß': 'ss',
    'ł': 'l', 'Ł': 'l',
    'ð': 'd', 'Ð': 'd',
    'þ': 'th', 'Þ': 'th',
}

_COMBINING_MARKS = re.compile(r'[\u0300-\u036f]')
_NON_ALNUM = re.compile(r'[^a-z0-9\s]')


def normalize_name(name: str) -> str:
    """
    Normalize a player name for exact matching.

    Steps:
    1. Convert to lowercase
    2. Replace special letters (ø, æ, ß, ł, ð, þ)
    3. Decompose unicode (NFD) and drop combining accents
    4. Remove everything but letters, digits and spaces
    5. Collapse whitespace

    Args:
        name: The name to normalize

    Returns:
        Normalized name string (empty string for empty input)

    Examples:
        >>> normalize_name("José García")
        'jose garcia'
        >>> normalize_name("JOSÉ   GARCÍA")
        'jose garcia'
        >>> normalize_name("O'Brien")
        'obrien'
        >>> normalize_name("Smith-Jones")
        'smithjones'
    """
    if not name:
        return ""

    # Step 1: Lowercase
    name = name.lower()

    # Step 2: Special letters
    name = ''.join(SPECIAL_CHARS.get(c, c) for c in name)

    # Step 3: Strip accents
    name = _COMBINING_MARKS.sub('', unicodedata.normalize('NFD', name))

    # Step 4: Remove punctuation (no substitution)
    name = _NON_ALNUM.sub('', name)

    # Step 5: Remove extra whitespace
    return ' '.join(name.split())


def build_full_name(first_name: str | None, last_name: str | None, suffix: str | None = None) -> str:
    """Join name parts the way sources print them ("first last suffix")."""
    parts = [p.strip() for p in (first_name, last_name, suffix) if p and p.strip()]
    return ' '.join(parts)
