"""Database repository helpers."""

from repositories.match_repository import (
    add_match,
    add_player,
    delete_match,
    fetch_match_results,
    get_or_create_player,
    list_matches,
    list_players,
    rename_player,
    update_match,
)
from repositories.rating_history_repository import (
    ensure_schema,
    fetch_current_rating,
    fetch_current_ratings,
    fetch_history_with_order,
    fetch_leaderboard,
    fetch_player_history,
)
from repositories.system_repository import fetch_stored_parameters, store_system_config

__all__ = [
    "add_match",
    "add_player",
    "delete_match",
    "ensure_schema",
    "fetch_current_rating",
    "fetch_current_ratings",
    "fetch_history_with_order",
    "fetch_leaderboard",
    "fetch_match_results",
    "fetch_player_history",
    "fetch_stored_parameters",
    "get_or_create_player",
    "list_matches",
    "list_players",
    "rename_player",
    "store_system_config",
    "update_match",
]
