"""Data module for FM Club."""

from fm_club.data.generators import (
    generate_market,
    generate_market_player,
    generate_player,
    generate_team,
    initialize_teams,
)

__all__ = [
    "generate_market",
    "generate_market_player",
    "generate_player",
    "generate_team",
    "initialize_teams",
]
