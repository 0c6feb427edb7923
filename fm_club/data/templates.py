"""Flavor-text pools and static reference lists.

Pure helpers: picking a template never touches game state.
"""

import random
import string

TEMPLATES = {
    "goal": [
        "GOAL! {scorer} finds the net!",
        "{scorer} scores! The stadium erupts.",
        "What a finish from {scorer}!",
        "{scorer} makes no mistake from close range.",
    ],
    "penalty_goal": [
        "GOAL! {player} converts the penalty.",
        "{player} sends the keeper the wrong way from the spot.",
    ],
    "penalty_miss": [
        "PENALTY MISSED! {player} fails from the spot.",
        "{player} blazes the penalty over the bar!",
    ],
    "penalty": [
        "PENALTY! {fouler} brings down {victim} in the box.",
        "The referee points to the spot after {fouler} clips {victim}.",
    ],
    "save": [
        "Great save by {keeper} to deny {attacker}!",
        "{keeper} gets down well to stop {attacker}'s effort.",
        "{attacker} tests {keeper}, who holds on.",
    ],
    "miss": [
        "{player} drags the shot wide.",
        "{player} fires over the bar under pressure from {defender}.",
        "So close! {player} hits the side netting.",
    ],
    "foul": [
        "{player} brings down {victim}. Free kick.",
        "Clumsy challenge by {player} on {victim}.",
    ],
    "yellow": [
        "Yellow card for {player}.",
        "{player} goes into the book.",
    ],
    "yellow_aggressive": [
        "Reckless lunge from {player}. Yellow card.",
        "{player} flies into the tackle and is booked.",
    ],
    "red": [
        "RED CARD! {player} is sent off after a VAR check!",
        "Straight red for {player}!",
    ],
    "second_yellow": [
        "SECOND YELLOW! {player} is sent off!",
    ],
    "offside": [
        "{player} is flagged offside.",
        "The flag goes up against {player}.",
    ],
    "corner": [
        "Corner to {team}.",
        "{team} win a corner. {player} goes to take it.",
    ],
    "injury": [
        "{player} is down and needs treatment.",
        "The medical staff rush on for {player}.",
    ],
    "injury_aggravated": [
        "{player} aggravates the injury and cannot continue.",
    ],
    "fight": [
        "Scuffle! {player} is sent off after a brawl.",
        "{player} is shown a red card after a fight breaks out.",
    ],
    "argument": [
        "{player} argues furiously with the referee and is sent off!",
    ],
    "pitch_invasion": [
        "A fan invades the pitch at {team}'s ground. Play is stopped.",
    ],
    "fatigue": [
        "{team}: the players are tiring, the tempo drops.",
    ],
    # News headlines
    "news_win": [
        "{team} Secure Victory Over {opponent}",
        "Three Points for {team} Against {opponent}",
        "{team} Triumph in {opponent} Clash",
    ],
    "news_loss": [
        "{team} Fall to {opponent} Defeat",
        "Disappointment for {team} Against {opponent}",
    ],
    "news_draw": [
        "{team} and {opponent} Share the Spoils",
        "Stalemate Between {team} and {opponent}",
    ],
    "news_signing": [
        "{club} Sign {player}",
        "{player} Completes {club} Move",
        "{club} Announce {player} Signing",
    ],
    "news_sale": [
        "{club} Part Ways with {player}",
        "{player} Leaves {club}",
    ],
    "news_injury": [
        "{player} Sidelined with {injury}",
        "Injury Blow for {club}: {player} Out",
    ],
    "news_offer": [
        "{club} Bid for {player}",
        "{club} Make Move for {player}",
    ],
    "news_trophy": [
        "{club} Lift the {competition}",
        "Glory for {club} in the {competition}",
    ],
}

TEAM_PREFIXES = [
    "Real", "Athletic", "Sporting", "United", "City", "Dynamo", "Olympic", "Racing",
]
TEAM_CITIES = [
    "Ashford", "Brampton", "Castlebay", "Dunmore", "Eastwick", "Fairhaven",
    "Glenrock", "Highmoor", "Ironbridge", "Kingsport", "Lakeview", "Marlow",
    "Northgate", "Oakridge", "Portsea", "Queensbury", "Redcliff", "Stonehaven",
    "Thornbury", "Upton", "Valemont", "Westbrook", "Yarrow", "Zennor",
    "Ambergate", "Blackwater", "Coldharbour", "Deepdale", "Elmstead", "Foxley",
    "Greyfield", "Hollowell", "Kestrel Bay", "Larkhill", "Millbrook", "Newhaven",
]
FOREIGN_CITIES = [
    "Aurelia", "Borgund", "Caldera", "Drava", "Estoria", "Falkenau", "Garona",
    "Helvar", "Istra", "Jadranka", "Korvan", "Lusitano", "Montclair", "Nordvik",
    "Orvieto", "Pannonia", "Quimper", "Rivoli", "Salzhafen", "Tarnow", "Ulster",
    "Valdora", "Wexford", "Ximena", "Ystad", "Zaragosa", "Arvika", "Brugge",
    "Corvina", "Delfino", "Emmental", "Fiordo", "Granada", "Hallstatt",
]

FIRST_NAMES = [
    "James", "Lucas", "Mateo", "Noah", "Leon", "Hugo", "Marco", "Luca", "Emil",
    "Tomas", "Pedro", "Felix", "Kai", "Adam", "Jonas", "Milan", "Arda", "Kerem",
    "Rafael", "Oliver", "Ivan", "Theo", "Bruno", "Diego", "Sami", "Yusuf",
]
LAST_NAMES = [
    "Smith", "Garcia", "Muller", "Rossi", "Martin", "Silva", "Jansen", "Novak",
    "Kaya", "Peeters", "Costa", "Weber", "Moreau", "Santos", "Horvat", "Yilmaz",
    "Fischer", "Lopez", "Bianchi", "Dubois", "Berg", "Kowalski", "Petrov", "Demir",
]

# Pairs of team names that make a derby
RIVALRIES = [
    ("Real Ashford", "Athletic Brampton"),
    ("Sporting Castlebay", "United Dunmore"),
    ("City Eastwick", "Dynamo Fairhaven"),
]

# Lore participants for the first continental season
INITIAL_EUROPE_TEAMS = ["Real Ashford", "Athletic Brampton", "Sporting Castlebay"]

# Lore super cup semi-finalists for the first season, in seed order
INITIAL_SUPER_CUP_TEAMS = [
    "Real Ashford", "Athletic Brampton", "Sporting Castlebay", "United Dunmore",
]


def pick_template(category: str, rng: random.Random | None = None) -> str:
    """Pick a random template from a category pool."""
    pool = TEMPLATES.get(category)
    if not pool:
        return ""
    return (rng or random).choice(pool)


def fill_template(template: str, variables: dict) -> str:
    """Fill {placeholders}; unknown placeholders are left empty."""
    names = {name for _, name, _, _ in string.Formatter().parse(template) if name}
    values = {name: variables.get(name, "") for name in names}
    return template.format(**values)


def is_rivalry(home_name: str, away_name: str) -> bool:
    return any({home_name, away_name} == set(pair) for pair in RIVALRIES)
