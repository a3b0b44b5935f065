from types import SimpleNamespace

import pytest

from rm_sync.schemas.rm import RMProject
from rm_sync.services.project_matching import (
    AUTO_MAP_THRESHOLD,
    MatchReason,
    auto_map_suggestions,
    calculate_match_score,
    find_best_match,
    suggest_matches,
)


class TestMatchScore:
    @pytest.mark.parametrize("local,remote,code,expected", [
        ("  Website   Redesign", "website redesign", None, (1.0, MatchReason.EXACT)),
        ("WEB-01", "Website", "web-01", (0.95, MatchReason.CODE_MATCH)),
        ("Website", "Website Redesign", None, (0.85, MatchReason.STARTS_WITH)),
        ("Redesign Website", "Website Redesign 2026", None, (0.75, MatchReason.WORD_MATCH)),
        ("QA", "Project QA", None, (0.65, MatchReason.CONTAINS)),
        ("Alpha", "Zulu", None, (0.0, MatchReason.PARTIAL)),
    ])
    def test_strategies(self, local, remote, code, expected):
        assert calculate_match_score(local, remote, code) == expected

    def test_similar_names_score_at_most_point_six(self):
        score, reason = calculate_match_score("Websight Redesing", "Website Redesign")
        assert reason == MatchReason.PARTIAL
        assert 0 < score <= 0.6

    def test_short_words_do_not_count_as_word_matches(self):
        _, reason = calculate_match_score("to do", "todo list")
        assert reason != MatchReason.WORD_MATCH


class TestSuggestions:
    projects = [
        RMProject(id=1, name="Ops"),
        RMProject(id=2, name="Ops"),
        RMProject(id=3, name="Project QA", code="QA-7"),
    ]

    def test_first_project_wins_ties(self):
        match = find_best_match("L1", "ops", self.projects)
        assert (match.rm_project_id, match.score) == (1, 1.0)

    def test_score_must_exceed_the_minimum(self):
        assert find_best_match("L1", "QA", self.projects) is None
        match = find_best_match("L1", "QA", self.projects, min_score=0.6)
        assert (match.rm_project_id, match.reason) == (3, MatchReason.CONTAINS)

    def test_suggestions_are_keyed_by_local_project(self):
        local = [SimpleNamespace(id="L1", name="Ops"), SimpleNamespace(id="L2", name="qa-7"), SimpleNamespace(id="L3", name="Payroll")]

        suggestions = suggest_matches(local, self.projects)

        assert set(suggestions) == {"L1", "L2"}
        assert suggestions["L2"].rm_project_code == "QA-7"

    def test_auto_map_threshold(self):
        local = [SimpleNamespace(id="L1", name="Project"), SimpleNamespace(id="L2", name="Project Ops Team")]
        suggestions = suggest_matches(local, self.projects)

        confident = auto_map_suggestions(suggestions)

        assert [s.local_project_id for s in confident] == ["L1"]
        assert all(s.score >= AUTO_MAP_THRESHOLD for s in confident)
