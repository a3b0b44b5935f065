"""Fuzzy matching of local projects to RM projects for mapping suggestions."""

import logging
import re
from difflib import SequenceMatcher
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

log = logging.getLogger(__name__)

DEFAULT_MIN_SCORE = 0.65
AUTO_MAP_THRESHOLD = 0.85


class MatchReason(str, Enum):
    EXACT = "exact"
    CODE_MATCH = "code_match"
    STARTS_WITH = "starts_with"
    WORD_MATCH = "word_match"
    CONTAINS = "contains"
    PARTIAL = "partial"


class ProjectMatchSuggestion(BaseModel):
    local_project_id: str
    local_project_name: str
    rm_project_id: int
    rm_project_name: str
    rm_project_code: Optional[str] = None
    score: float
    reason: MatchReason


def _normalize(value: str) -> str:
    return re.sub(r"\s+", " ", value.strip().lower())


def _words(value: str) -> List[str]:
    # Words of two letters or fewer carry no signal
    return [w for w in value.split(" ") if len(w) > 2]


def calculate_match_score(local_name: str, rm_name: str, rm_code: Optional[str] = None) -> Tuple[float, MatchReason]:
    """
    Score how well a local project name matches an RM project, from 0 to 1.

    Strategies are tried strongest first: exact name, exact code, prefix,
    all significant words present, substring, then a similarity ratio scaled
    to at most 0.6.
    """
    local = _normalize(local_name)
    remote = _normalize(rm_name)
    code = _normalize(rm_code) if rm_code else None

    if local == remote:
        return 1.0, MatchReason.EXACT
    if code and local == code:
        return 0.95, MatchReason.CODE_MATCH
    if remote.startswith(local) or local.startswith(remote):
        return 0.85, MatchReason.STARTS_WITH

    local_words = _words(local)
    remote_words = _words(remote)
    if local_words and remote_words:
        if all(any(w in rw for rw in remote_words) for w in local_words) or \
                all(any(w in lw for lw in local_words) for w in remote_words):
            return 0.75, MatchReason.WORD_MATCH

    if local in remote or remote in local:
        return 0.65, MatchReason.CONTAINS

    similarity = SequenceMatcher(None, local, remote).ratio() if local and remote else 0.0
    if similarity > 0.6:
        return similarity * 0.6, MatchReason.PARTIAL
    return 0.0, MatchReason.PARTIAL


def find_best_match(
    local_project_id: str,
    local_project_name: str,
    rm_projects: Iterable,
    min_score: float = DEFAULT_MIN_SCORE,
) -> Optional[ProjectMatchSuggestion]:
    """Best RM project strictly above ``min_score``; the first one wins ties."""
    best: Optional[ProjectMatchSuggestion] = None
    best_score = min_score
    for rm_project in rm_projects:
        score, reason = calculate_match_score(local_project_name, rm_project.name, rm_project.code)
        if score > best_score:
            best_score = score
            best = ProjectMatchSuggestion(
                local_project_id=local_project_id,
                local_project_name=local_project_name,
                rm_project_id=rm_project.id,
                rm_project_name=rm_project.name,
                rm_project_code=rm_project.code,
                score=round(score, 4),
                reason=reason,
            )
    return best


def suggest_matches(
    local_projects: Iterable,
    rm_projects: List,
    min_score: float = DEFAULT_MIN_SCORE,
) -> Dict[str, ProjectMatchSuggestion]:
    """Best suggestion per local project (objects exposing ``id`` and ``name``), keyed by local project ID."""
    suggestions: Dict[str, ProjectMatchSuggestion] = {}
    for project in local_projects:
        match = find_best_match(project.id, project.name, rm_projects, min_score)
        if match is not None:
            suggestions[project.id] = match
    log.debug(f"Suggested {len(suggestions)} RM project matches")
    return suggestions


def auto_map_suggestions(
    suggestions: Dict[str, ProjectMatchSuggestion],
    threshold: float = AUTO_MAP_THRESHOLD,
) -> List[ProjectMatchSuggestion]:
    """Suggestions confident enough to map without review (exact, code or prefix matches)."""
    return [s for s in suggestions.values() if s.score >= threshold]
