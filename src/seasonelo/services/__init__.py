"""Write-side services: event mutations, account merge and replay triggers."""

from seasonelo.services.events import (
    EventNotFoundError,
    ImportedMatch,
    ImportedParticipant,
    ImportResult,
    create_match,
    create_tournament,
    delete_match,
    delete_tournament,
    import_tournament_results,
    update_match,
    update_tournament,
)
from seasonelo.services.merge import MergeError, MergePreview, merge_players, preview_merge
from seasonelo.services.triggers import RecalculationTrigger

__all__ = [
    "RecalculationTrigger",
    "EventNotFoundError",
    "ImportedMatch",
    "ImportedParticipant",
    "ImportResult",
    "create_match",
    "update_match",
    "delete_match",
    "create_tournament",
    "update_tournament",
    "delete_tournament",
    "import_tournament_results",
    "MergeError",
    "MergePreview",
    "preview_merge",
    "merge_players",
]
