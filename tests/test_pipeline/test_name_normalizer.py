"""Unit tests for name normalization.

Test Strategy:
1. Test case and whitespace folding
2. Test accent removal (José → jose)
3. Test letters without a decomposition (ø, æ, ß, ł, ð, þ)
4. Test punctuation removal without substitution (O'Brien → obrien)
5. Test idempotence
6. Test edge cases (empty strings, None)
"""
import pytest
from laxstats.services.pipeline.name_normalizer import build_full_name, normalize_name


class TestNormalizeName:
    """Test suite for normalize_name."""

    # Case / Whitespace Tests
    # ─────────────────────────────────────────────────────────────

    def test_case_and_whitespace_variants_match(self):
        """Should normalize case, accent and spacing variants identically."""
        assert normalize_name("José García") == "jose garcia"
        assert normalize_name("JOSÉ   GARCÍA") == "jose garcia"
        assert normalize_name("  josé\tgarcía ") == "jose garcia"

    def test_converts_to_lowercase(self):
        """Should convert all characters to lowercase."""
        assert normalize_name("LYLE THOMPSON") == "lyle thompson"

    # Accent Tests
    # ─────────────────────────────────────────────────────────────

    def test_removes_accents(self):
        """Should remove diacritical marks from names."""
        assert normalize_name("Zoë Löwe") == "zoe lowe"
        assert normalize_name("François Côté") == "francois cote"

    # Special Letter Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.parametrize("raw,expected", [
        ("Bjørn", "bjorn"),
        ("ØSTBY", "ostby"),
        ("Ærø", "aero"),
        ("Åse", "ase"),
        ("Strauß", "strauss"),
        ("Łukasz", "lukasz"),
        ("Guðmundur", "gudmundur"),
        ("Þór", "thor"),
    ])
    def test_replaces_letters_without_decomposition(self, raw, expected):
        """Should map ø/æ/å/ß/ł/ð/þ (either case) to ASCII."""
        assert normalize_name(raw) == expected

    # Punctuation Tests
    # ─────────────────────────────────────────────────────────────

    def test_strips_apostrophes_and_hyphens(self):
        """Should drop apostrophes and hyphens without inserting a space."""
        assert normalize_name("O'Brien") == "obrien"
        assert normalize_name("Smith-Jones") == "smithjones"

    def test_keeps_digits(self):
        """Should keep digits."""
        assert normalize_name("Player 2") == "player 2"

    # Idempotence Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.parametrize("raw", ["José García", "O'Brien-Ødegård Jr.", "  MIXED case  ", ""])
    def test_is_idempotent(self, raw):
        """Should return the same value when applied twice."""
        once = normalize_name(raw)
        assert normalize_name(once) == once

    # Edge Case Tests
    # ─────────────────────────────────────────────────────────────

    def test_empty_and_none(self):
        """Should return empty string for empty or None input."""
        assert normalize_name("") == ""
        assert normalize_name(None) == ""

    def test_only_punctuation(self):
        """Should return empty string when nothing alphanumeric remains."""
        assert normalize_name("'-.") == ""


class TestBuildFullName:
    """Test suite for build_full_name."""

    def test_joins_parts(self):
        """Should join first, last and suffix with single spaces."""
        assert build_full_name("Lyle", "Thompson") == "Lyle Thompson"
        assert build_full_name("Paul", "Rabil", "Jr.") == "Paul Rabil Jr."

    def test_skips_missing_parts(self):
        """Should skip None and blank parts."""
        assert build_full_name(None, "Thompson") == "Thompson"
        assert build_full_name("Lyle", " ", None) == "Lyle"
        assert build_full_name(None, None) == ""
