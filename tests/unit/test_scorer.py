"""Unit tests for candidate relevance scoring."""

import pytest

from src.extraction.scorer import score_candidate

YEAR = 2026


class TestScoreCandidate:
    """Tests for score_candidate."""

    def test_plain_url_scores_zero(self):
        assert score_candidate("https://photooxy.com/images/banner.jpg", current_year=YEAR) == 0

    @pytest.mark.parametrize("path,expected", [
        ("/uploads/a.jpg", 10),
        ("/temp/a.jpg", 15),
        ("/result/a.jpg", 20),
        ("/results/a.jpg", 20),
        ("/generated/a.jpg", 20),
        ("/cache/a.jpg", 10),
    ])
    def test_storage_fragments(self, path, expected):
        assert score_candidate("https://photooxy.com" + path, current_year=YEAR) == expected

    def test_template_path_is_not_temp(self):
        assert score_candidate("https://photooxy.com/template/a.jpg", current_year=YEAR) == 0

    def test_size_marker(self):
        assert score_candidate("https://photooxy.com/img/a_large.jpg", current_year=YEAR) == 5

    def test_current_year_beats_previous_year(self):
        current = score_candidate(f"https://photooxy.com/img/{YEAR}/a.jpg", current_year=YEAR)
        previous = score_candidate(f"https://photooxy.com/img/{YEAR - 1}/a.jpg", current_year=YEAR)
        older = score_candidate(f"https://photooxy.com/img/{YEAR - 5}/a.jpg", current_year=YEAR)

        assert (current, previous, older) == (10, 5, 0)

    def test_hash_runs(self):
        short = score_candidate("https://photooxy.com/img/" + "a1" * 10 + ".jpg", current_year=YEAR)
        long = score_candidate("https://photooxy.com/img/" + "f0" * 16 + ".jpg", current_year=YEAR)

        assert short == 12
        assert long == 15

    def test_result_container_bonus(self):
        url = "https://photooxy.com/img/a.jpg"

        assert score_candidate(url, in_result_container=True, current_year=YEAR) \
            == score_candidate(url, current_year=YEAR) + 10

    def test_signals_are_additive(self):
        url = f"https://photooxy.com/result/{YEAR}/" + "ab" * 16 + "_large.jpg"

        assert score_candidate(url, True, current_year=YEAR) == 20 + 5 + 10 + 15 + 10

    def test_more_signals_never_score_lower(self):
        """Adding a positive signal to a URL must not lower its score."""
        base = "https://photooxy.com/img/a.jpg"
        richer = f"https://photooxy.com/generated/{YEAR}/a.jpg"

        assert score_candidate(richer, current_year=YEAR) > score_candidate(base, current_year=YEAR)

    def test_recent_result_beats_plain_image(self):
        recent = score_candidate(f"https://photooxy.com/result/{YEAR}/x.jpg", current_year=YEAR)
        plain = score_candidate("https://photooxy.com/img/x.jpg", current_year=YEAR)

        assert recent > plain
