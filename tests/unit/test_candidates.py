"""Unit tests for ordered fallback chains"""

from pdfpoppler.platform.candidates import firstCandidate_find


class TestFirstCandidate:
    """Test priority-ordered candidate evaluation"""

    def test_first_match_wins(self):
        """Earlier candidates beat later ones that also match"""
        available = {"poppler-xvfb", "poppler"}
        assert firstCandidate_find(["poppler-xvfb", "poppler"], available.__contains__) == "poppler-xvfb"
        assert firstCandidate_find(["poppler", "poppler-xvfb"], available.__contains__) == "poppler"

    def test_skips_rejected_candidates(self):
        """Rejected candidates fall through to the next"""
        assert firstCandidate_find(["/usr/bin/xvfb-run", "/opt/bin/xvfb-run"], lambda p: p.startswith("/opt")) == "/opt/bin/xvfb-run"

    def test_no_match(self):
        """Nothing accepted yields None"""
        assert firstCandidate_find(["a", "b"], lambda _: False) is None
        assert firstCandidate_find([], lambda _: True) is None

    def test_stops_at_first_match(self):
        """Candidates after the match are never evaluated"""
        seen: list[int] = []

        def accept(value: int) -> bool:
            seen.append(value)
            return value == 2

        assert firstCandidate_find(iter([1, 2, 3, 4]), accept) == 2
        assert seen == [1, 2]

    def test_falsy_candidate_is_returned(self):
        """An accepted falsy candidate is still a match"""
        assert firstCandidate_find(["", "x"], lambda value: True) == ""
